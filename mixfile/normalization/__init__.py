"""
Mixture normalisation package.

Infers concentrations from absolute quantities (mass, volume, moles)
scattered through a mixture tree.
"""

from mixfile.data.units import AbsType
from mixfile.normalization.norm_mixture import NormMixture, NormMixtureNote

__all__ = [
    'AbsType',
    'NormMixture',
    'NormMixtureNote',
]
