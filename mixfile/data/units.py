"""
Unit definitions and conversions.

Units are preferentially stored by URI, displayed by common name, and
interconverted as necessary to other schemes such as MInChI mnemonics.
The catalog is built once per process and is read-only thereafter.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from loguru import logger


_OBO = 'http://purl.obolibrary.org/obo/'


class AbsType(Enum):
    """Physical dimension an absolute quantity reduces to."""
    NONE = "none"
    MASS = "mass"  # reference scale: g
    VOLUME = "volume"  # reference scale: L
    MOLES = "moles"  # reference scale: mol


class StandardUnits(str, Enum):
    """URIs for the units understood by the catalog."""
    # concentrations
    pc = _OBO + 'UO_0000187'  # percent (of arbitrary type)
    pcWV = _OBO + 'UO_0000164'  # percent weight per volume
    pcWW = _OBO + 'UO_0000163'  # percent weight per weight
    pcVV = _OBO + 'UO_0000205'  # percent volume per volume
    pcMM = _OBO + 'UO_0000076'  # percent mole per mole
    ratio = _OBO + 'UO_0000190'  # ratio (numerator only; nominally by volume)
    mol_L = _OBO + 'UO_0000062'
    mmol_L = _OBO + 'UO_0000063'
    umol_L = _OBO + 'UO_0000064'
    nmol_L = _OBO + 'UO_0000065'
    pmol_L = _OBO + 'UO_0000066'
    g_L = _OBO + 'UO_0000175'
    mg_L = _OBO + 'UO_0000273'  # aka micrograms per mL
    ug_L = _OBO + 'UO_0000275'  # aka nanograms per mL
    mol_kg = _OBO + 'UO_0000068'

    # absolute quantities
    kg = _OBO + 'UO_0000009'
    g = _OBO + 'UO_0000021'
    mg = _OBO + 'UO_0000022'
    ug = _OBO + 'UO_0000023'
    ng = _OBO + 'UO_0000024'
    L = _OBO + 'UO_0000099'
    mL = _OBO + 'UO_0000098'
    uL = _OBO + 'UO_0000101'
    nL = _OBO + 'UO_0000102'
    mol = _OBO + 'UO_0000013'
    mmol = _OBO + 'UO_0000040'
    umol = _OBO + 'UO_0000039'
    nmol = _OBO + 'UO_0000041'


@dataclass(frozen=True)
class UnitEntry:
    """
    One row of the catalog.

    Attributes:
        uri: canonical unit identifier
        names: display names, preferred first
        minchi: MInChI mnemonic, if the unit can be expressed in MInChI
        minchi_scale: multiply a value in this unit by this to get the MInChI value
        abs_type: dimension, for absolute quantities (mass, volume, moles)
        abs_scale: multiply by this to get grams, litres or moles
    """
    uri: str
    names: Tuple[str, ...]
    minchi: Optional[str] = None
    minchi_scale: float = 1.0
    abs_type: AbsType = AbsType.NONE
    abs_scale: float = 1.0

    @property
    def preferred_name(self) -> str:
        return self.names[0]


MU = 'μ'
MICRO = 'µ'

# (unit, display names, MInChI mnemonic, scale from unit to MInChI)
UNIT_DEFINITIONS: Sequence[Tuple[StandardUnits, Tuple[str, ...], Optional[str], float]] = (
    (StandardUnits.pc, ('%',), 'pp', 1),
    (StandardUnits.pcWV, ('w/v%',), 'wv', 0.01),
    (StandardUnits.pcWW, ('w/w%',), 'wf', 0.01),
    (StandardUnits.pcVV, ('v/v%',), 'vf', 0.01),
    (StandardUnits.pcMM, ('mol/mol%',), 'mf', 0.01),
    (StandardUnits.ratio, ('ratio',), 'vp', 1),
    (StandardUnits.mol_L, ('mol/L', 'M'), 'mr', 1),
    (StandardUnits.mmol_L, ('mmol/L', 'mM'), 'mr', 1E-3),
    (StandardUnits.umol_L, (MU + 'mol/L', MICRO + 'mol/L', 'umol/L', MU + 'M', MICRO + 'M', 'uM'), 'mr', 1E-6),
    (StandardUnits.nmol_L, ('nmol/L', 'nM'), 'mr', 1E-9),
    (StandardUnits.pmol_L, ('pmol/L', 'pM'), 'mr', 1E-12),
    (StandardUnits.g_L, ('g/L',), 'wv', 1E-3),
    (StandardUnits.mg_L, ('mg/L',), 'wv', 1E-6),
    (StandardUnits.ug_L, (MU + 'g/L', MICRO + 'g/L', 'ug/L'), 'wv', 1E-9),
    (StandardUnits.mol_kg, ('mol/kg',), 'mb', 1),
    (StandardUnits.kg, ('kg',), None, 1),
    (StandardUnits.g, ('g',), None, 1),
    (StandardUnits.mg, ('mg',), None, 1),
    (StandardUnits.ug, (MU + 'g', MICRO + 'g', 'ug'), None, 1),
    (StandardUnits.ng, ('ng',), None, 1),
    (StandardUnits.L, ('L',), None, 1),
    (StandardUnits.mL, ('mL',), None, 1),
    (StandardUnits.uL, (MU + 'L', MICRO + 'L', 'uL'), None, 1),
    (StandardUnits.nL, ('nL',), None, 1),
    (StandardUnits.mol, ('mol',), None, 1),
    (StandardUnits.mmol, ('mmol',), None, 1),
    (StandardUnits.umol, (MU + 'mol', MICRO + 'mol', 'umol'), None, 1),
    (StandardUnits.nmol, ('nmol',), None, 1),
)


# absolute unit -> (dimension, factor to reference scale)
ABSOLUTE_DEFINITIONS: Mapping[StandardUnits, Tuple[AbsType, float]] = MappingProxyType({
    StandardUnits.kg: (AbsType.MASS, 1E3),
    StandardUnits.g: (AbsType.MASS, 1),
    StandardUnits.mg: (AbsType.MASS, 1E-3),
    StandardUnits.ug: (AbsType.MASS, 1E-6),
    StandardUnits.ng: (AbsType.MASS, 1E-9),
    StandardUnits.L: (AbsType.VOLUME, 1),
    StandardUnits.mL: (AbsType.VOLUME, 1E-3),
    StandardUnits.uL: (AbsType.VOLUME, 1E-6),
    StandardUnits.nL: (AbsType.VOLUME, 1E-9),
    StandardUnits.mol: (AbsType.MOLES, 1),
    StandardUnits.mmol: (AbsType.MOLES, 1E-3),
    StandardUnits.umol: (AbsType.MOLES, 1E-6),
    StandardUnits.nmol: (AbsType.MOLES, 1E-9),
})


class UnitCatalog:
    """
    Bidirectional table between unit URIs, display names and MInChI mnemonics.

    Names map many-to-one onto URIs; each URI maps back to its preferred name.
    Use get_unit_catalog() rather than constructing this directly.
    """

    def __init__(self, entries: Iterable[UnitEntry]):
        by_uri = {}
        by_name = {}
        for entry in entries:
            if entry.uri in by_uri:
                raise ValueError(f"Duplicate unit URI: {entry.uri}")
            by_uri[entry.uri] = entry
            for name in entry.names:
                if name in by_name:
                    raise ValueError(f"Unit name '{name}' is defined twice")
                by_name[name] = entry.uri
        self._by_uri: Mapping[str, UnitEntry] = MappingProxyType(by_uri)
        self._by_name: Mapping[str, str] = MappingProxyType(by_name)

    def __len__(self) -> int:
        return len(self._by_uri)

    def __contains__(self, uri: str) -> bool:
        return _uri_key(uri) in self._by_uri

    def entries(self) -> List[UnitEntry]:
        return list(self._by_uri.values())

    def standard_list(self) -> List[str]:
        """All URIs, in definition order."""
        return list(self._by_uri.keys())

    def common_names(self) -> List[str]:
        """Preferred display names, aligned with standard_list()."""
        return [entry.preferred_name for entry in self._by_uri.values()]

    def name_to_uri(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        return self._by_name.get(name)

    def uri_to_name(self, uri: Optional[str]) -> Optional[str]:
        entry = self._by_uri.get(_uri_key(uri)) if uri else None
        return entry.preferred_name if entry else None

    def resolve(self, units: Optional[str]) -> Optional[str]:
        """Get the URI for units given either as a URI or as a display name."""
        if not units:
            return None
        if _uri_key(units) in self._by_uri:
            return _uri_key(units)
        return self._by_name.get(units)

    def convert_to_minchi(self, uri: str, values: Sequence[float]) -> Tuple[Optional[str], Optional[List[float]]]:
        """
        Convert values in the given units to MInChI form.

        Returns:
            (mnemonic, scaled values), or (None, None) if the unit has no MInChI equivalent
        """
        entry = self._by_uri.get(_uri_key(uri))
        if entry is None or entry.minchi is None:
            return None, None
        return entry.minchi, [v * entry.minchi_scale for v in values]

    def convert_from_minchi(self, uri: str, values: Sequence[float]) -> Optional[List[float]]:
        """Inverse of convert_to_minchi: MInChI-scaled values back into the given units."""
        entry = self._by_uri.get(_uri_key(uri))
        if entry is None or entry.minchi is None:
            return None
        return [v / entry.minchi_scale for v in values]

    def to_absolute(self, uri: Optional[str]) -> Tuple[AbsType, float]:
        """Dimension and scale to grams, litres or moles; (NONE, 1.0) for anything else."""
        entry = self._by_uri.get(_uri_key(uri)) if uri else None
        if entry is None:
            return AbsType.NONE, 1.0
        return entry.abs_type, entry.abs_scale


_catalog_instance: Optional[UnitCatalog] = None
_catalog_lock = threading.Lock()


def get_unit_catalog() -> UnitCatalog:
    """Get the process-wide catalog, building it on first use."""
    global _catalog_instance
    if _catalog_instance is None:
        with _catalog_lock:
            if _catalog_instance is None:
                entries = []
                for unit, names, minchi, scale in UNIT_DEFINITIONS:
                    abs_type, abs_scale = ABSOLUTE_DEFINITIONS.get(unit, (AbsType.NONE, 1.0))
                    entries.append(UnitEntry(unit.value, names, minchi, scale, abs_type, abs_scale))
                _catalog_instance = UnitCatalog(entries)
                logger.debug(f"Unit catalog initialised with {len(_catalog_instance)} units")
    return _catalog_instance


def _uri_key(uri) -> str:
    # enum members hash by member name, so look up by the plain URI string
    return uri.value if isinstance(uri, StandardUnits) else uri
