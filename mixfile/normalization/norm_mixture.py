"""
Mixture normalisation: recommendations for making a mixture more conformant.

The main job is converting "absolute" quantities (grams, litres, moles) into
concentrations. Amounts are propagated through the tree until nothing more
can be inferred: a branch with no quantity of its own gets the sum of its
children, and a lone unquantified child gets whatever its parent has left
over. Each child whose amount and parent's amount are both known then gets a
concentration, where the pairing of dimensions allows it.

It is up to the caller to decide what to do with the resulting notes.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger

from mixfile.data.mixfile import MixfileComponent, quantity_values
from mixfile.data.mixture import Mixture, Origin
from mixfile.data.units import AbsType, StandardUnits, get_unit_catalog


# (child dimension, parent dimension) -> (multiplier over parent amount, resulting units);
# pairings that would need a density or molecular weight are absent
CONCENTRATION_PAIRINGS: Dict[Tuple[AbsType, AbsType], Tuple[float, StandardUnits]] = {
    (AbsType.MASS, AbsType.MASS): (100, StandardUnits.pcWW),
    (AbsType.MASS, AbsType.VOLUME): (0.1, StandardUnits.pcWV),  # g per 100 mL
    (AbsType.VOLUME, AbsType.VOLUME): (100, StandardUnits.pcVV),
    (AbsType.MOLES, AbsType.VOLUME): (1, StandardUnits.mol_L),
    (AbsType.MOLES, AbsType.MOLES): (100, StandardUnits.pcMM),
}


@dataclass
class NormMixtureNote:
    """
    Normalisation advice for one component.

    Attributes:
        origin: position of the component in the mixture
        stereo_enum: stereo-enumerated structures, if any (not computed here)
        conc_quantity: inferred concentration, a scalar or [low, high]
        conc_error: standard error, when conc_quantity is a scalar
        conc_units: display name of the concentration units
        conc_relation: modifier applied to the quantity
    """
    origin: Origin
    stereo_enum: Optional[List[str]] = None
    conc_quantity: Optional[Union[float, List[float]]] = None
    conc_error: Optional[float] = None
    conc_units: Optional[str] = None
    conc_relation: Optional[str] = None

    @property
    def has_concentration(self) -> bool:
        return self.conc_quantity is not None


@dataclass
class _AbsoluteAmount:
    type: AbsType = AbsType.NONE
    amount1: Optional[float] = None
    amount2: Optional[float] = None  # upper bound, for ranges
    error: Optional[float] = None

    @property
    def resolved(self) -> bool:
        return self.type != AbsType.NONE

    @property
    def is_range(self) -> bool:
        return self.amount2 is not None


class NormMixture:
    """
    Analyses a mixture and produces one note per component.

    Notes are aligned with Mixture.get_origins(). The mixture is cloned on
    construction, so later changes by the caller do not affect the analysis.
    """

    def __init__(self, mixture: Mixture, max_passes: Optional[int] = None):
        self.mixture = mixture.clone()
        self.max_passes = max_passes
        self.notes: List[NormMixtureNote] = []

    def analyse(self) -> List[NormMixtureNote]:
        origins = self.mixture.get_origins()
        comp_list = [self.mixture.get_component(origin) for origin in origins]
        self.notes = [NormMixtureNote(origin=list(origin)) for origin in origins]

        child_indexes = self._child_indexes(origins)
        amounts = [self.to_absolute_units(comp) for comp in comp_list]

        # each productive pass resolves at least one more node
        max_passes = self.max_passes or len(origins) + 1
        passes = 0
        while passes < max_passes:
            passes += 1
            modified = False
            for n in range(len(origins)):
                if not child_indexes[n]:
                    continue
                if self._sum_children(amounts, n, child_indexes[n]):
                    modified = True
                if self._complete_child(amounts, n, child_indexes[n]):
                    modified = True
            if not modified:
                break
        else:
            logger.warning(f"Absolute amount propagation stopped after {max_passes} passes")

        logger.debug(f"Absolute amount propagation converged in {passes} passes")

        for n in range(len(origins)):
            if amounts[n].resolved:
                for i in child_indexes[n]:
                    self._derive_concentration(self.notes[i], amounts[i], amounts[n], comp_list[n])

        return self.notes

    def find_note(self, origin: Origin) -> Optional[NormMixtureNote]:
        for note in self.notes:
            if note.origin == list(origin):
                return note
        return None

    @staticmethod
    def to_absolute_units(comp: MixfileComponent) -> _AbsoluteAmount:
        """
        Convert the component's quantity to grams, litres or moles, if its units allow.

        A scalar keeps its error (scaled); a [low, high] range carries no error.
        """
        values = quantity_values(comp)
        catalog = get_unit_catalog()
        abs_type, scale = catalog.to_absolute(catalog.resolve(comp.units))
        if values is None or abs_type == AbsType.NONE:
            return _AbsoluteAmount()

        if len(values) == 1:
            error = comp.error * scale if comp.error is not None else None
            return _AbsoluteAmount(abs_type, values[0] * scale, None, error)
        return _AbsoluteAmount(abs_type, values[0] * scale, values[1] * scale, None)

    # ------------ private methods ------------

    @staticmethod
    def _child_indexes(origins: List[Origin]) -> List[List[int]]:
        position = {tuple(origin): n for n, origin in enumerate(origins)}
        indexes: List[List[int]] = [[] for _ in origins]
        for n, origin in enumerate(origins):
            if origin:
                indexes[position[tuple(origin[:-1])]].append(n)
        return indexes

    @staticmethod
    def _sum_children(amounts: List[_AbsoluteAmount], n: int, children: List[int]) -> bool:
        """If the parent is unresolved, add up its children when they all agree on type."""
        if amounts[n].resolved:
            return False
        child_type, total = AbsType.NONE, 0.0
        for i in children:
            child = amounts[i]
            if not child.resolved or child.is_range or (child_type != AbsType.NONE and child.type != child_type):
                return False
            child_type = child.type
            total += child.amount1
        amounts[n] = _AbsoluteAmount(child_type, total)
        return True

    @staticmethod
    def _complete_child(amounts: List[_AbsoluteAmount], n: int, children: List[int]) -> bool:
        """If all but one child match the parent's type, the last one gets the remainder."""
        parent = amounts[n]
        if not parent.resolved or parent.is_range or len(children) < 2:
            return False
        missing, used = None, 0.0
        for i in children:
            child = amounts[i]
            if not child.resolved:
                if missing is not None:
                    return False
                missing = i
            elif child.type != parent.type or child.is_range:
                return False
            else:
                used += child.amount1
        if missing is None:
            return False
        amounts[missing] = _AbsoluteAmount(parent.type, parent.amount1 - used)
        return True

    @staticmethod
    def _derive_concentration(note: NormMixtureNote, child: _AbsoluteAmount,
                              parent: _AbsoluteAmount, parent_comp: MixfileComponent) -> None:
        if not child.resolved or parent.is_range:
            return
        pairing = CONCENTRATION_PAIRINGS.get((child.type, parent.type))
        if pairing is None or not parent.amount1 > 0:
            return

        multiplier, units = pairing
        scale = multiplier / parent.amount1
        if child.is_range:
            note.conc_quantity = [child.amount1 * scale, child.amount2 * scale]
            note.conc_error = None
        else:
            note.conc_quantity = child.amount1 * scale
            note.conc_error = child.error * scale if child.error is not None else None
        note.conc_units = get_unit_catalog().uri_to_name(units)
        note.conc_relation = parent_comp.relation
