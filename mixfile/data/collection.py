"""
Collection of mixtures, serialised as a JSON array of mixfiles.
"""

import json
from typing import Iterator, List, Optional

from mixfile.data.mixfile import MixfileError
from mixfile.data.mixture import Mixture, beautify


class MixtureCollection:
    """Convenience methods for handling an ordered list of mixtures."""

    def __init__(self, mixtures: Optional[List[Mixture]] = None):
        self.mixtures: List[Mixture] = mixtures if mixtures is not None else []

    def __len__(self) -> int:
        return len(self.mixtures)

    def __iter__(self) -> Iterator[Mixture]:
        return iter(self.mixtures)

    @property
    def count(self) -> int:
        return len(self.mixtures)

    def get_mixture(self, idx: int) -> Mixture:
        return self.mixtures[idx].clone()

    def set_mixture(self, idx: int, mixture: Mixture) -> None:
        self.mixtures[idx] = mixture.clone()

    def delete_mixture(self, idx: int) -> None:
        del self.mixtures[idx]

    def append_mixture(self, mixture: Mixture) -> int:
        self.mixtures.append(mixture)
        return len(self.mixtures) - 1

    def insert_mixture(self, idx: int, mixture: Mixture) -> None:
        self.mixtures.insert(idx, mixture)

    def swap_mixtures(self, idx1: int, idx2: int) -> None:
        self.mixtures[idx1], self.mixtures[idx2] = self.mixtures[idx2], self.mixtures[idx1]

    @classmethod
    def deserialise(cls, data: str) -> 'MixtureCollection':
        """
        Unpack a JSON array of mixfiles.

        Raises:
            MixfileError: if the content is not a JSON array of valid mixfiles
        """
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            raise MixfileError(f"Collection is not valid JSON: {e}") from e
        if not isinstance(parsed, list):
            raise MixfileError("Input content is not a JSON array")
        return cls([Mixture.from_dict(item) for item in parsed])

    def serialise(self) -> str:
        return beautify([mixture.to_dict() for mixture in self.mixtures])
