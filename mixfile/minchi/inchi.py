"""
Interoperability with InChI technology.

Structure identifiers are produced outside this package. The builder only
sees a StructureIdentifierProvider; InChIExecutable is the stock provider
that runs the native InChI generator binary once per structure.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger


INCHI_PREFIX = 'InChI='
DEFAULT_INCHI_OPTIONS = ('-AuxNone', '-NoLabels', '-Key')


class InChIError(RuntimeError):
    """Raised when a structure identifier could not be generated."""
    pass


@dataclass(frozen=True)
class StructureIdentifier:
    """Result of identifier generation: the InChI string and its hashed key."""
    identifier: str
    identifier_hash: Optional[str] = None


class StructureIdentifierProvider(ABC):
    """
    Generates the canonical chemical identifier for a molecular structure.

    Implementations must not modify the structure, and should raise InChIError
    when generation fails.
    """

    @abstractmethod
    async def generate(self, structure: str) -> StructureIdentifier:
        """
        Generate the identifier for a structure.

        Args:
            structure: molecule in MDL Molfile format

        Returns:
            StructureIdentifier with identifier and (optionally) its key

        Raises:
            InChIError: if no identifier could be produced
        """
        pass

    def is_available(self) -> bool:
        return True


class InChIExecutable(StructureIdentifierProvider):
    """
    Runs the InChI generator binary as a subprocess.

    The molfile is fed on stdin; the first line of output is the InChI
    and the second the InChIKey.
    """

    def __init__(self, executable: Optional[Path] = None,
                 options: Sequence[str] = DEFAULT_INCHI_OPTIONS,
                 timeout: Optional[float] = 30.0):
        """
        Args:
            executable: path to the InChI generator (e.g. inchi-1)
            options: command-line options, passed after -STDIO
            timeout: seconds to wait for each structure (None waits forever)
        """
        self.executable = Path(executable) if executable else None
        self.options = list(options)
        self.timeout = timeout

    def is_available(self) -> bool:
        """True if the executable exists and can be run."""
        if self.executable is None:
            return False
        return self.executable.is_file() and os.access(self.executable, os.X_OK)

    def command(self) -> List[str]:
        return [str(self.executable), '-STDIO'] + self.options

    async def generate(self, structure: str) -> StructureIdentifier:
        if not self.is_available():
            raise InChIError(f"InChI executable is not available: {self.executable}")

        mdlmol = structure if structure.endswith('\n') else structure + '\n'
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command(),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(
                process.communicate(mdlmol.encode('utf-8')), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise InChIError(f"InChI generator timed out after {self.timeout}s") from e
        except OSError as e:
            raise InChIError(f"Could not run InChI generator: {e}") from e

        return self.parse_output(stdout.decode('utf-8', errors='replace'),
                                 stderr.decode('utf-8', errors='replace'))

    @staticmethod
    def parse_output(raw: str, stderr: str = '') -> StructureIdentifier:
        """Pick the InChI and InChIKey out of the generator's output."""
        lines = [line.strip() for line in raw.splitlines() if line.strip()]
        if not lines or not lines[0].startswith(INCHI_PREFIX):
            logger.debug(f"InChI generator output:\n{raw}\nstderr:\n{stderr}")
            raise InChIError(f"Invalid result from InChI generator: {raw.strip()[:200]!r}")
        key = lines[1] if len(lines) > 1 else None
        if key and key.startswith('InChIKey='):
            key = key[len('InChIKey='):]
        return StructureIdentifier(identifier=lines[0], identifier_hash=key)
