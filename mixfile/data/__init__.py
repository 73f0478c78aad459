"""
Mixture data model.

Provides the Mixfile records, the operable Mixture tree, collections of
mixtures, and the unit catalog.
"""

from mixfile.data.mixfile import (
    MIXFILE_VERSION,
    InvalidOriginError,
    Mixfile,
    MixfileComponent,
    MixfileError,
)
from mixfile.data.mixture import Mixture
from mixfile.data.collection import MixtureCollection
from mixfile.data.units import AbsType, StandardUnits, UnitCatalog, get_unit_catalog

__all__ = [
    'AbsType',
    'MIXFILE_VERSION',
    'InvalidOriginError',
    'Mixfile',
    'MixfileComponent',
    'MixfileError',
    'Mixture',
    'MixtureCollection',
    'StandardUnits',
    'UnitCatalog',
    'get_unit_catalog',
]
