"""
Formulates a MInChI string out of a mixture.

The notation has three layers after the header:

    MInChI=0.00.1S/<molecules>/n{<hierarchy>}/g{<concentrations>}

Sibling lists are sorted first, so any two mixtures that differ only in the
order their components were authored produce the same string. Components are
then numbered in pre-order; the molecules layer lists each component's InChI
(without the "InChI=1S/" prefix, or blank) in that order, the hierarchy layer
nests the numbers with braces, and the concentration layer mirrors the
hierarchy with one concentration token per component.
"""

import asyncio
import copy
import itertools
import json
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from mixfile.data.mixfile import Mixfile, MixfileComponent, quantity_values, ratio_percent
from mixfile.data.mixture import Mixture, Origin
from mixfile.data.units import get_unit_catalog
from mixfile.minchi.hash_keys import SHORT_KEY_LENGTH, make_long_key, make_short_key
from mixfile.minchi.inchi import InChIError, StructureIdentifierProvider

MINCHI_VERSION = '0.00.1S'
INCHI_STANDARD_PREFIX = 'InChI=1S/'  # anything else is not considered a valid InChI
SIGNIFICANT_FIGURES = 6


class MInChISegment(Enum):
    """Category of each stretch of the outgoing MInChI string."""
    NONE = "none"
    HEADER = "header"  # the initial recognition string
    COMPONENT = "component"  # structure fragments
    HIERARCHY = "hierarchy"  # the /n layer
    CONCENTRATION = "concentration"  # the /g layer


MixtureSource = Union[Mixture, Mixfile, Dict[str, Any]]


class ExportMInChI:
    """
    Builds the MInChI notation and hash keys for one mixture.

    Usage:
        >>> builder = ExportMInChI(mixfile, provider=InChIExecutable(path))
        >>> await builder.fill_inchi()
        >>> builder.formulate()
        'MInChI=0.00.1S/...'

    The input is cloned on construction; fill_inchi() writes identifiers into
    that private copy, available afterwards as ``builder.mixture``.
    """

    def __init__(self, mixfile: MixtureSource,
                 provider: Optional[StructureIdentifierProvider] = None,
                 version: str = MINCHI_VERSION,
                 short_key_length: int = SHORT_KEY_LENGTH):
        if isinstance(mixfile, Mixture):
            self.mixture = mixfile.clone()
        elif isinstance(mixfile, Mixfile):
            self.mixture = Mixture(copy.deepcopy(mixfile))
        else:
            self.mixture = Mixture.from_dict(mixfile)
        self.provider = provider
        self.version = version
        self.short_key_length = short_key_length
        self.failures: List[Origin] = []

        self._result: Optional[str] = None
        self._molecules: List[str] = []
        self._segments: List[Tuple[str, MInChISegment]] = []

    # ------------ structure identifiers ------------

    async def fill_inchi(self, concurrent: bool = False) -> bool:
        """
        Calculate an InChI for every component that has a structure but no InChI.

        Components that already have an InChI are believed, even if it is wrong.
        A failure for one component is logged and recorded in ``failures``; the
        component is left without an identifier and the others carry on.

        Args:
            concurrent: run all generator calls at once rather than one by one

        Returns:
            True if any component was given an identifier
        """
        if self.provider is None or not self.provider.is_available():
            logger.debug("No structure identifier provider available; skipping InChI fill-in")
            return False

        pending = [(origin, comp) for origin, comp in zip(self.mixture.get_origins(), self.mixture.get_components())
                   if comp.molfile and comp.molfile.strip() and not comp.inchi]
        if not pending:
            return False

        self.failures = []
        if concurrent:
            results = await asyncio.gather(*(self._fill_component(origin, comp) for origin, comp in pending))
        else:
            results = [await self._fill_component(origin, comp) for origin, comp in pending]

        filled = sum(1 for r in results if r)
        logger.info(f"Generated {filled} of {len(pending)} structure identifiers")
        if filled:
            self._result = None
        return filled > 0

    async def _fill_component(self, origin: Origin, comp: MixfileComponent) -> bool:
        try:
            result = await self.provider.generate(comp.molfile)
        except (InChIError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not generate InChI for component {origin} ({comp.name or 'unnamed'}): {e}")
            self.failures.append(origin)
            return False
        comp.inchi = result.identifier
        comp.inchi_key = result.identifier_hash
        return True

    # ------------ notation ------------

    def formulate(self) -> str:
        """Assemble the MInChI string; the result is also kept for get_result()."""
        modmix = self.mixture.clone()
        self.sort_contents(modmix.mixfile)

        root = modmix.mixfile
        # a root with its own identifier or concentration heads the hierarchy
        if root.children and not (self.structure_fragment(root) or self.format_concentration(root)):
            top = root.children
        elif not root.is_empty():
            top = [root]
        else:
            top = []

        self._molecules = []
        counter = itertools.count(1)
        layer_n, layer_g = self._assemble(top, counter)

        self._segments = []
        self._append('MInChI=' + self.version, MInChISegment.HEADER)
        self._append('/', MInChISegment.NONE)
        for n, frag in enumerate(self._molecules):
            if n > 0:
                self._append('&', MInChISegment.NONE)
            self._append(frag, MInChISegment.COMPONENT)
        self._append('/', MInChISegment.NONE)
        self._append('n{' + layer_n + '}', MInChISegment.HIERARCHY)
        self._append('/', MInChISegment.NONE)
        self._append('g{' + layer_g + '}', MInChISegment.CONCENTRATION)

        self._result = ''.join(text for text, _ in self._segments)
        return self._result

    def get_result(self) -> str:
        if self._result is None:
            self.formulate()
        return self._result

    def get_segments(self) -> List[Tuple[str, MInChISegment]]:
        """The result broken into (text, category) pieces, in order."""
        if self._result is None:
            self.formulate()
        return list(self._segments)

    def get_segment_marks(self) -> List[MInChISegment]:
        """One category per character of the result, for highlighting."""
        return [segment for text, segment in self.get_segments() for _ in text]

    def molecules_layer(self) -> str:
        """The structure section, which is what the hash keys are made from."""
        if self._result is None:
            self.formulate()
        return '&'.join(self._molecules)

    def make_long_hash_key(self) -> str:
        return make_long_key(self.molecules_layer())

    def make_short_hash_key(self) -> str:
        return make_short_key(self.molecules_layer(), self.short_key_length)

    @staticmethod
    def sort_contents(comp: MixfileComponent) -> None:
        """Sort every sibling list in place by InChI, then name."""
        if not comp.contents:
            return
        for child in comp.contents:
            ExportMInChI.sort_contents(child)
        comp.contents.sort(key=_sort_key)

    # ------------ private methods ------------

    def _append(self, text: str, segment: MInChISegment) -> None:
        if text:
            self._segments.append((text, segment))

    def _assemble(self, siblings: Sequence[MixfileComponent], counter) -> Tuple[str, str]:
        bits_n: List[str] = []
        bits_g: List[str] = []
        for comp in siblings:
            idx = next(counter)
            self._molecules.append(self.structure_fragment(comp))
            token_n = str(idx)
            token_g = self.format_concentration(comp) or ''
            if comp.children:
                sub_n, sub_g = self._assemble(comp.children, counter)
                token_n += '{' + sub_n + '}'
                token_g += '{' + sub_g + '}'
            bits_n.append(token_n)
            bits_g.append(token_g)
        return '&'.join(bits_n), '&'.join(bits_g)

    @staticmethod
    def structure_fragment(comp: MixfileComponent) -> str:
        if comp.inchi and comp.inchi.startswith(INCHI_STANDARD_PREFIX):
            return comp.inchi[len(INCHI_STANDARD_PREFIX):]
        return ''

    @staticmethod
    def format_concentration(comp: MixfileComponent) -> Optional[str]:
        """Turn a component's concentration into a MInChI token, or None if there isn't one."""
        percent = ratio_percent(comp)
        if percent is not None:
            return format_number(percent) + 'pp'
        if comp.ratio is not None:
            return None  # an invalid ratio means no concentration at all

        values = quantity_values(comp)
        if values is None or not comp.units:
            return None

        catalog = get_unit_catalog()
        uri = catalog.resolve(comp.units)
        if uri is None:
            return None
        mnemonic, scaled = catalog.convert_to_minchi(uri, values)
        if mnemonic is None:
            return None

        bits = []
        if comp.relation and comp.relation != '=':
            bits.append(comp.relation)
        bits.append(format_number(scaled[0]))
        if len(scaled) > 1:
            bits.append('..' + format_number(scaled[1]))
        bits.append(mnemonic)
        return ''.join(bits)


def format_number(value: float) -> str:
    """Compact decimal form: no exponent, no trailing zeros, limited significant figures."""
    text = f'{value:.{SIGNIFICANT_FIGURES}g}'
    if 'e' in text:
        text = format(Decimal(text), 'f')
    if text == '-0':
        text = '0'
    return text


def _sort_key(comp: MixfileComponent) -> Tuple[str, str]:
    # components that tie on InChI and name are ordered by their full content
    primary = (comp.inchi or '?') + '\t' + (comp.name or '')
    return primary, json.dumps(comp.to_dict(), sort_keys=True, separators=(',', ':'))
