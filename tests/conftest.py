"""
Pytest configuration and shared fixtures for mixfile tests.

Provides:
- Sample mixtures (simple, nested, absolute quantities)
- Fake structure identifier providers
- Temporary configuration files
"""

import asyncio
import copy
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import yaml

from mixfile.data.mixture import Mixture
from mixfile.minchi.inchi import InChIError, StructureIdentifier, StructureIdentifierProvider
from tests.fixtures.test_data import (
    MASS_MIXFILE,
    NESTED_MIXFILE,
    SIMPLE_MIXFILE,
)


# ============================================================================
# FAKE PROVIDERS
# ============================================================================

class FakeInChIProvider(StructureIdentifierProvider):
    """
    Looks identifiers up in a table instead of running the generator.

    Structures missing from the table raise InChIError. Every call is
    recorded in ``calls``.
    """

    def __init__(self, table: Dict[str, str], delay: float = 0.0, available: bool = True):
        self.table = table
        self.delay = delay
        self.available = available
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def is_available(self) -> bool:
        return self.available

    async def generate(self, structure: str) -> StructureIdentifier:
        self.calls.append(structure)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if structure not in self.table:
                raise InChIError(f"unknown structure: {structure}")
            inchi = self.table[structure]
            return StructureIdentifier(identifier=inchi, identifier_hash='KEY-' + inchi[-4:])
        finally:
            self.in_flight -= 1


# ============================================================================
# MIXTURE FIXTURES
# ============================================================================

@pytest.fixture
def simple_mixture() -> Mixture:
    """Saline: NaCl + water under a named root."""
    return Mixture.from_dict(copy.deepcopy(SIMPLE_MIXFILE))


@pytest.fixture
def nested_mixture() -> Mixture:
    """Two solutions, each with a solute and water."""
    return Mixture.from_dict(copy.deepcopy(NESTED_MIXFILE))


@pytest.fixture
def mass_mixture() -> Mixture:
    """Two 50 g components under an unquantified root."""
    return Mixture.from_dict(copy.deepcopy(MASS_MIXFILE))


@pytest.fixture
def empty_mixture() -> Mixture:
    return Mixture()


# ============================================================================
# PROVIDER FIXTURES
# ============================================================================

@pytest.fixture
def fake_provider_factory():
    """Build a FakeInChIProvider from a molfile -> InChI table."""
    def _factory(table: Optional[Dict[str, str]] = None, **kwargs) -> FakeInChIProvider:
        return FakeInChIProvider(table or {}, **kwargs)
    return _factory


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def config_file(tmp_path) -> Path:
    """Write a partial YAML configuration and return its path."""
    path = tmp_path / "mixfile.yaml"
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump({
            'inchi': {'executable': '/opt/inchi/inchi-1', 'timeout': 5},
            'minchi': {'short_key_length': 20},
        }, f)
    return path
