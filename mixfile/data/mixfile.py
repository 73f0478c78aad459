"""
Mixfile records: the raw definition of the contents of a mixture.

A Mixfile maps directly onto the JSON document that holds the serialised
content. Each MixfileComponent is a node in the component tree; the root
additionally carries the format version. For an operable tree with
navigation and mutation, see mixfile.data.mixture.Mixture.
"""

import copy
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Union

from loguru import logger


MIXFILE_VERSION = 0.01  # version number to use for newly created instances

# JSON key -> attribute name, in serialisation order
MIXFILE_COMPONENT_FIELDS = {
    'name': 'name',
    'description': 'description',
    'synonyms': 'synonyms',
    'formula': 'formula',
    'molfile': 'molfile',
    'inchi': 'inchi',
    'inchiKey': 'inchi_key',
    'smiles': 'smiles',
    'ratio': 'ratio',
    'quantity': 'quantity',
    'error': 'error',
    'units': 'units',
    'relation': 'relation',
    'identifiers': 'identifiers',
    'links': 'links',
    'contents': 'contents',
}

# fields that identify a component; anything else is decoration
IDENTIFYING_FIELDS = [
    'name', 'description', 'synonyms', 'formula', 'molfile', 'inchi', 'inchi_key', 'smiles',
    'ratio', 'quantity', 'error', 'units', 'relation', 'identifiers', 'links',
]

RELATIONS = ('=', '~', '<', '<=', '>', '>=')

Quantity = Union[float, List[float]]
IdentifierMap = Dict[str, Union[str, List[str]]]


class MixfileError(ValueError):
    """Raised when mixfile content is malformed."""
    pass


class InvalidOriginError(MixfileError, IndexError):
    """Raised when an origin vector addresses a component that does not exist."""
    pass


@dataclass
class MixfileComponent:
    """
    One node of the mixture tree.

    If the component has subcomponents, the concentration and metadata fields
    apply to all of them collectively. If more than one structure field is
    given (formula, molfile, inchi, smiles), they must describe the same species.

    Attributes:
        ratio: [numerator, denominator], relative to siblings in the same branch
        quantity: a number, or [low, high] for a range
        error: standard error, applies when quantity is a scalar
        units: display name (e.g. 'mol/L') or unit URI
        relation: modifier applied to quantity ('=', '~', '<', '<=', '>', '>=')
        identifiers: external database IDs, string or list of strings per key
        links: resolvable URLs, string or list of strings per key
    """
    name: Optional[str] = None
    description: Optional[str] = None
    synonyms: Optional[List[str]] = None
    formula: Optional[str] = None
    molfile: Optional[str] = None
    inchi: Optional[str] = None
    inchi_key: Optional[str] = None
    smiles: Optional[str] = None
    ratio: Optional[List[float]] = None
    quantity: Optional[Quantity] = None
    error: Optional[float] = None
    units: Optional[str] = None
    relation: Optional[str] = None
    identifiers: Optional[IdentifierMap] = None
    links: Optional[IdentifierMap] = None
    contents: Optional[List['MixfileComponent']] = None

    @property
    def children(self) -> List['MixfileComponent']:
        """Child components, never None."""
        return self.contents or []

    @property
    def has_structure(self) -> bool:
        return bool(self.molfile or self.inchi or self.smiles or self.formula)

    def is_empty(self) -> bool:
        """True if nothing identifying is set and there are no subcomponents."""
        for attr in IDENTIFYING_FIELDS:
            if getattr(self, attr) is not None:
                return False
        return len(self.children) == 0

    def clone(self) -> 'MixfileComponent':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON exchange shape, omitting absent fields."""
        result: Dict[str, Any] = {}
        for key, attr in MIXFILE_COMPONENT_FIELDS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if attr == 'contents':
                value = [child.to_dict() for child in value]
            else:
                value = copy.deepcopy(value)
            result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Any) -> 'MixfileComponent':
        """
        Build a component tree from its JSON representation.

        Unknown keys are dropped. Wrongly typed fields raise MixfileError.
        """
        if not isinstance(data, dict):
            raise MixfileError(f"Component must be a JSON object, got {type(data).__name__}")
        kwargs = _parse_fields(data)
        return cls(**kwargs)

    def fields_equal(self, other: 'MixfileComponent') -> bool:
        """Compare own fields only, ignoring the subcomponents."""
        return all(getattr(self, attr) == getattr(other, attr) for attr in IDENTIFYING_FIELDS)


@dataclass
class Mixfile(MixfileComponent):
    """Root component of a mixture, carrying the format version."""
    mixfile_version: float = MIXFILE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'mixfileVersion': self.mixfile_version}
        result.update(super().to_dict())
        return result

    @classmethod
    def from_dict(cls, data: Any) -> 'Mixfile':
        if not isinstance(data, dict):
            raise MixfileError(f"Mixfile must be a JSON object, got {type(data).__name__}")
        version = data.get('mixfileVersion')
        if version is None:
            raise MixfileError("Invalid mixfile: missing mixfileVersion")
        if isinstance(version, bool) or not isinstance(version, (int, float)):
            raise MixfileError(f"Invalid mixfile: mixfileVersion must be numeric, got {version!r}")
        kwargs = _parse_fields(data)
        return cls(mixfile_version=version, **kwargs)

    def component_only(self) -> MixfileComponent:
        """Copy of the root fields as a plain component (no version)."""
        return MixfileComponent(**{f.name: copy.deepcopy(getattr(self, f.name))
                                   for f in fields(MixfileComponent)})


def _parse_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key == 'mixfileVersion':
            continue
        attr = MIXFILE_COMPONENT_FIELDS.get(key)
        if attr is None:
            logger.debug(f"Dropping unknown mixfile field '{key}'")
            continue
        if value is None:
            continue
        kwargs[attr] = _parse_value(attr, value)
    return kwargs


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_value(attr: str, value: Any) -> Any:
    if attr == 'contents':
        if not isinstance(value, list):
            raise MixfileError("Field 'contents' must be a list of components")
        return [MixfileComponent.from_dict(child) for child in value]

    if attr == 'synonyms':
        if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
            raise MixfileError("Field 'synonyms' must be a list of strings")
        return list(value)

    if attr in ('ratio', 'quantity'):
        if _is_number(value) and attr == 'quantity':
            return value
        if not isinstance(value, list) or not all(_is_number(v) for v in value):
            raise MixfileError(f"Field '{attr}' must be numeric")
        return list(value)

    if attr == 'error':
        if not _is_number(value):
            raise MixfileError("Field 'error' must be numeric")
        return value

    if attr in ('identifiers', 'links'):
        if not isinstance(value, dict):
            raise MixfileError(f"Field '{attr}' must be an object")
        parsed: IdentifierMap = {}
        for key, entry in value.items():
            if isinstance(entry, str):
                parsed[key] = entry
            elif isinstance(entry, list) and all(isinstance(e, str) for e in entry):
                parsed[key] = list(entry)
            else:
                raise MixfileError(f"Field '{attr}.{key}' must be a string or list of strings")
        return parsed

    if not isinstance(value, str):
        raise MixfileError(f"Field '{attr}' must be a string, got {type(value).__name__}")
    return value


def quantity_values(comp: MixfileComponent) -> Optional[List[float]]:
    """
    Get the quantity as a list of one (scalar) or two (range) values.

    Arrays that are not exactly [low, high] count as no quantity.
    """
    quantity = comp.quantity
    if quantity is None:
        return None
    if _is_number(quantity):
        return [float(quantity)]
    if isinstance(quantity, list) and len(quantity) == 2 and all(_is_number(v) for v in quantity):
        return [float(quantity[0]), float(quantity[1])]
    return None


def ratio_percent(comp: MixfileComponent) -> Optional[float]:
    """Ratio as a percentage, or None if the ratio is missing or invalid."""
    ratio = comp.ratio
    if not ratio or len(ratio) < 2:
        return None
    numer, denom = ratio[0], ratio[1]
    if not _is_number(numer) or not _is_number(denom) or not denom > 0:
        return None
    return 100 * numer / denom
