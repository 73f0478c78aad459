"""
Operable mixture instance.

Wraps a Mixfile with navigation, mutation, cloning, structural comparison and
serialisation. Components are addressed by an "origin vector": a list of
child indices from the root, where [] is the root itself, [0] is its first
component, [0, 1] the second child of the first component, and so on.

Origin vectors are only valid until the next structural change (delete,
prepend); callers must re-resolve them afterwards.
"""

import copy
import json
import re
from dataclasses import fields
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from loguru import logger

from mixfile.data.mixfile import (
    MIXFILE_COMPONENT_FIELDS,
    InvalidOriginError,
    Mixfile,
    MixfileComponent,
    MixfileError,
    _parse_value,
)

Origin = List[int]

_ATTRIBUTES = set(MIXFILE_COMPONENT_FIELDS.values())


class Mixture:
    """
    Data container for a mixture: the Mixfile tree plus operations on it.

    The tree is owned by this instance. Components returned from the getters
    are live references; clone the mixture first if the caller intends to
    modify it without affecting other holders.
    """

    def __init__(self, mixfile: Optional[Mixfile] = None):
        self.mixfile = mixfile if mixfile is not None else Mixfile()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mixture):
            return NotImplemented
        return self.equals(other)

    def __repr__(self) -> str:
        return f"Mixture(name={self.mixfile.name!r}, components={len(self.get_origins())})"

    # ------------ construction & serialisation ------------

    @classmethod
    def from_dict(cls, data: Any) -> 'Mixture':
        return cls(Mixfile.from_dict(data))

    @classmethod
    def deserialise(cls, data: str) -> 'Mixture':
        """
        Unpack a JSON string into a mixture.

        Raises:
            MixfileError: if the string is not valid JSON or not a valid mixfile
        """
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            raise MixfileError(f"Mixfile is not valid JSON: {e}") from e
        return cls.from_dict(parsed)

    def to_dict(self) -> Dict[str, Any]:
        return self.mixfile.to_dict()

    def serialise(self) -> str:
        """Convert the whole mixfile into a pretty-printed string."""
        return beautify(self.to_dict())

    @staticmethod
    def serialise_component(comp: MixfileComponent) -> str:
        return beautify(comp.to_dict())

    def clone(self) -> 'Mixture':
        return Mixture(copy.deepcopy(self.mixfile))

    def is_empty(self) -> bool:
        return self.mixfile.is_empty()

    @staticmethod
    def is_component_empty(comp: MixfileComponent) -> bool:
        return comp.is_empty()

    # ------------ navigation ------------

    def get_component(self, origin: Origin) -> MixfileComponent:
        """
        Fetch the component at the given origin vector.

        Raises:
            InvalidOriginError: if any index along the way is out of range
        """
        comp: MixfileComponent = self.mixfile
        for depth, idx in enumerate(origin):
            children = comp.children
            if not isinstance(idx, int) or idx < 0 or idx >= len(children):
                raise InvalidOriginError(
                    f"Origin {list(origin)} is out of range at depth {depth} ({len(children)} children)"
                )
            comp = children[idx]
        return comp

    def get_parent_component(self, origin: Origin) -> Optional[MixfileComponent]:
        if len(origin) == 0:
            return None
        return self.get_component(origin[:-1])

    def get_origins(self) -> List[Origin]:
        """All origin vectors in pre-order: parents before children, siblings in order."""
        origins: List[Origin] = []

        def descend(comp: MixfileComponent, origin: Origin) -> None:
            origins.append(origin)
            for n, child in enumerate(comp.children):
                descend(child, origin + [n])

        descend(self.mixfile, [])
        return origins

    def get_components(self) -> List[MixfileComponent]:
        """All components, aligned with get_origins()."""
        return [self.get_component(origin) for origin in self.get_origins()]

    @staticmethod
    def split_origin(origin: Origin) -> Tuple[Optional[Origin], Optional[int]]:
        """Split into (parent origin, child index); the root gives (None, None)."""
        if len(origin) == 0:
            return None, None
        return list(origin[:-1]), origin[-1]

    # ------------ mutation ------------

    def set_component(self, origin: Origin,
                      comp: Union[MixfileComponent, Mapping[str, Any]]) -> bool:
        """
        Merge fields into the component at the given position.

        A mapping may use attribute names or JSON keys. Keys mapped to None
        delete the field. When a MixfileComponent is given, only its non-null
        fields are merged.

        Returns:
            True if anything was changed

        Raises:
            MixfileError: unknown field, or a value of the wrong type
        """
        find = self.get_component(origin)

        if isinstance(comp, MixfileComponent):
            updates = {f.name: getattr(comp, f.name) for f in fields(MixfileComponent)
                       if getattr(comp, f.name) is not None}
        else:
            updates = {}
            for key, value in comp.items():
                attr = MIXFILE_COMPONENT_FIELDS.get(key, key)
                if attr not in _ATTRIBUTES:
                    raise MixfileError(f"Unknown component field '{key}'")
                updates[attr] = value

        for attr, value in updates.items():
            if value is None:
                continue
            if attr == 'contents':
                if not isinstance(value, list):
                    raise MixfileError("Field 'contents' must be a list of components")
                updates[attr] = [c if isinstance(c, MixfileComponent) else MixfileComponent.from_dict(c)
                                 for c in value]
            else:
                updates[attr] = _parse_value(attr, value)

        modified = False
        for attr, value in updates.items():
            if getattr(find, attr) != value:
                setattr(find, attr, copy.deepcopy(value))
                modified = True
        return modified

    def delete_component(self, origin: Origin) -> bool:
        """
        Delete the indicated component, moving its children into its position.

        The root cannot be deleted.

        Returns:
            True if a component was removed
        """
        if len(origin) == 0:
            logger.debug("Refusing to delete the root component")
            return False

        find = self.get_component(origin)
        parent = self.get_component(origin[:-1])
        idx = origin[-1]
        parent.contents[idx:idx + 1] = find.children
        return True

    def prepend_before(self, origin: Origin, comp: MixfileComponent) -> None:
        """
        Insert a new component "above" an existing one.

        The existing component becomes the sole child of the new one. For the
        root, the current root fields move down into a new child and the new
        component's fields become the root fields.
        """
        comp = copy.deepcopy(comp)
        if len(origin) == 0:
            old_root = self.mixfile.component_only()
            for f in fields(MixfileComponent):
                setattr(self.mixfile, f.name, getattr(comp, f.name))
            self.mixfile.contents = [old_root]
            return

        find = self.get_component(origin)
        parent = self.get_component(origin[:-1])
        comp.contents = [find]
        parent.contents[origin[-1]] = comp

    # ------------ comparison ------------

    def equals(self, other: Optional['Mixture']) -> bool:
        """True if both trees have equal fields at every node and the same branch structure."""
        if other is None:
            return False
        if self.mixfile.mixfile_version != other.mixfile.mixfile_version:
            return False
        return components_equal(self.mixfile, other.mixfile)


def components_equal(comp1: MixfileComponent, comp2: MixfileComponent) -> bool:
    """Recursive structural comparison; absent contents equals empty contents."""
    if not comp1.fields_equal(comp2):
        return False
    kids1, kids2 = comp1.children, comp2.children
    if len(kids1) != len(kids2):
        return False
    return all(components_equal(c1, c2) for c1, c2 in zip(kids1, kids2))


_KEY_WITH_NESTED = re.compile(r'^(\s*"\w+": )([\[{].*)$')
_LEADING_SPACE = re.compile(r'^(\s*)')


def beautify(data: Any) -> str:
    """Format JSON for human reading: nested objects and arrays start on their own line."""
    lines = json.dumps(data, indent=4, ensure_ascii=False).split('\n')
    for n, line in enumerate(lines):
        match = _KEY_WITH_NESTED.match(line)
        if not match:
            continue
        padding = _LEADING_SPACE.match(line).group(1)
        lines[n] = match.group(1).rstrip() + '\n' + padding + match.group(2)
    return '\n'.join(lines)
