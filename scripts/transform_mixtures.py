"""
Transform a stream of mixtures from one format into another.

Reads either a single mixfile or a JSON array of mixfiles and writes one
record per mixture, in input order:

- mixfile: pretty-printed mixfile (single input only makes sense here)
- json: JSON array, one compact mixfile per line
- minchi: MInChI notation, one per line
- longminchikey / shortminchikey: hashed keys of the MInChI structure section

MInChI-based outputs need the InChI generator binary, given with --inchi or
in the configuration file.

Usage:
    python scripts/transform_mixtures.py --input sample.mixfile --output-format minchi --inchi /usr/local/bin/inchi-1
    python scripts/transform_mixtures.py --input batch.json --output keys.shortminchikey
"""

import argparse
import asyncio
import json
import sys
from enum import Enum
from pathlib import Path
from typing import List, Optional

from loguru import logger
from tqdm import tqdm

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mixfile.data.collection import MixtureCollection
from mixfile.data.mixfile import MixfileError
from mixfile.data.mixture import Mixture
from mixfile.minchi.export_minchi import ExportMInChI
from mixfile.minchi.inchi import InChIExecutable
from mixfile.utils.config_manager import DEFAULT_CONFIG_PATH, ConfigManager


class TransformFormat(Enum):
    MIXFILE = 'mixfile'  # single mixfile
    JSON = 'json'  # list of mixtures
    MINCHI = 'minchi'  # MInChI notation, newline separated
    LONG_MINCHI_KEY = 'longminchikey'
    SHORT_MINCHI_KEY = 'shortminchikey'


INPUT_FORMATS = (TransformFormat.MIXFILE, TransformFormat.JSON)
MINCHI_FORMATS = (TransformFormat.MINCHI, TransformFormat.LONG_MINCHI_KEY, TransformFormat.SHORT_MINCHI_KEY)


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None):
    """Configure logging; stdout is reserved for output records."""
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level,
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="10 MB",
        )
        logger.info(f"Logging to {log_file}")


def detect_format(filename: Optional[str], given: Optional[str]) -> Optional[TransformFormat]:
    """Use the given format name, or else infer it from the file extension."""
    if given:
        return TransformFormat(given)
    if filename:
        for fmt in TransformFormat:
            if filename.endswith('.' + fmt.value):
                return fmt
    return None


def read_mixtures(text: str, fmt: TransformFormat) -> List[Mixture]:
    if fmt == TransformFormat.MIXFILE:
        return [Mixture.deserialise(text)]
    return list(MixtureCollection.deserialise(text))


async def transform(mixture: Mixture, fmt: TransformFormat, config: ConfigManager,
                    provider: Optional[InChIExecutable]) -> str:
    """Produce the output chunk for a single mixture."""
    if fmt == TransformFormat.MIXFILE:
        return mixture.serialise()
    if fmt == TransformFormat.JSON:
        return json.dumps(mixture.to_dict())

    builder = ExportMInChI(
        mixture,
        provider=provider,
        version=config.get('minchi', 'version'),
        short_key_length=config.get('minchi', 'short_key_length'),
    )
    await builder.fill_inchi(concurrent=bool(config.get('inchi', 'concurrent')))
    if fmt == TransformFormat.MINCHI:
        return builder.formulate()
    if fmt == TransformFormat.LONG_MINCHI_KEY:
        return builder.make_long_hash_key()
    return builder.make_short_hash_key()


async def run(mixtures: List[Mixture], fmt: TransformFormat, config: ConfigManager,
              provider: Optional[InChIExecutable], out) -> None:
    if fmt == TransformFormat.JSON:
        out.write('[\n')
    for idx, mixture in enumerate(tqdm(mixtures, desc="Transforming mixtures", file=sys.stderr,
                                       disable=len(mixtures) < 2)):
        chunk = await transform(mixture, fmt, config, provider)
        if fmt == TransformFormat.JSON:
            out.write(' ' if idx == 0 else ',')
        out.write(chunk + "\n")
    if fmt == TransformFormat.JSON:
        out.write("]\n")


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution."""
    parser = argparse.ArgumentParser(
        description="Transform mixtures between mixfile, JSON, MInChI and MInChI key formats"
    )
    parser.add_argument("--input", type=str, default=None, help="Input file (default: stdin)")
    parser.add_argument("--input-format", type=str, default=None,
                        choices=[f.value for f in INPUT_FORMATS],
                        help="Input format (default: from file extension)")
    parser.add_argument("--output", type=str, default=None, help="Output file (default: stdout)")
    parser.add_argument("--output-format", type=str, default=None,
                        choices=[f.value for f in TransformFormat],
                        help="Output format (default: from file extension)")
    parser.add_argument("--inchi", type=Path, default=None, help="Path to the InChI generator executable")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    parser.add_argument("--log-file", type=Path, default=None, help="Log file path")

    args = parser.parse_args(argv)

    config = ConfigManager(args.config)
    log_file = args.log_file or config.get('logging', 'file')
    setup_logging(config.get('logging', 'level'), Path(log_file) if log_file else None)
    for message in config.validate_config():
        logger.warning(f"Configuration: {message}")

    input_format = detect_format(args.input, args.input_format)
    if input_format is None:
        parser.error("Unknown input format")
    if input_format not in INPUT_FORMATS:
        parser.error(f"Cannot read format: {input_format.value}")

    output_format = detect_format(args.output, args.output_format)
    if output_format is None:
        parser.error("Unknown output format")

    provider = None
    if output_format in MINCHI_FORMATS:
        executable = args.inchi or config.inchi_executable()
        provider = InChIExecutable(
            executable,
            options=config.get('inchi', 'options'),
            timeout=config.get('inchi', 'timeout'),
        )
        if not provider.is_available():
            parser.error("For MInChI, must specify an InChI executable (--inchi or configuration)")

    try:
        if args.input:
            text = Path(args.input).read_text(encoding='utf-8')
        else:
            text = sys.stdin.read()
        mixtures = read_mixtures(text, input_format)
    except (MixfileError, OSError) as e:
        logger.error(f"Could not read mixtures: {e}")
        return 1
    logger.info(f"Read {len(mixtures)} mixture(s) as {input_format.value}")

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as out:
            asyncio.run(run(mixtures, output_format, config, provider, out))
    else:
        asyncio.run(run(mixtures, output_format, config, provider, sys.stdout))

    logger.info(f"Wrote {len(mixtures)} record(s) as {output_format.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
