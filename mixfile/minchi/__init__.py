"""
MInChI notation package.

Provides the canonical MInChI string builder, its hashed keys, and the
structure identifier providers that supply per-component InChIs.
"""

from mixfile.minchi.export_minchi import ExportMInChI, MInChISegment
from mixfile.minchi.hash_keys import make_long_key, make_short_key
from mixfile.minchi.inchi import (
    InChIError,
    InChIExecutable,
    StructureIdentifier,
    StructureIdentifierProvider,
)

__all__ = [
    'ExportMInChI',
    'MInChISegment',
    'make_long_key',
    'make_short_key',
    'InChIError',
    'InChIExecutable',
    'StructureIdentifier',
    'StructureIdentifierProvider',
]
