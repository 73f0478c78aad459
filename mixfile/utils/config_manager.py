"""
Configuration for the mixfile tools.

Settings live in a YAML file of named sections (inchi, minchi,
normalization, logging). Whatever the file leaves out falls back to
ConfigManager.DEFAULT_CONFIG.
"""

import copy
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / 'config' / 'mixfile.yaml'


class ConfigManager:
    """
    Sectioned settings with YAML persistence.

    Usage:
        >>> config = ConfigManager(DEFAULT_CONFIG_PATH)
        >>> config.get('minchi', 'short_key_length')
        16
    """

    DEFAULT_CONFIG = {
        'inchi': {
            'executable': None,
            'options': ['-AuxNone', '-NoLabels', '-Key'],
            'timeout': 30.0,
            'concurrent': False,
        },
        'minchi': {
            'version': '0.00.1S',
            'short_key_length': 16,
        },
        'normalization': {
            'max_passes': None,
        },
        'logging': {
            'level': 'INFO',
            'file': None,
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: YAML file to read; missing or None means built-in defaults
        """
        self.config_path = config_path
        self.config: dict[str, Any] = {}

        if config_path is not None and config_path.exists():
            self.load_config(config_path)
        else:
            logger.debug(f"Configuration file {config_path} not present; using built-in defaults")
            self.config = copy.deepcopy(self.DEFAULT_CONFIG)

    def load_config(self, path: Path) -> dict[str, Any]:
        """
        Read a YAML file and merge it over the defaults.

        Raises:
            FileNotFoundError: path does not exist
            yaml.YAMLError: file is not valid YAML
        """
        if not path.exists():
            raise FileNotFoundError(f"No configuration at {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {path}: {e}")
            raise

        if raw:
            self.config = self._merge_with_defaults(raw)
        else:
            logger.warning(f"{path} is empty; using built-in defaults")
            self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        self.config_path = path
        logger.debug(f"Configuration read from {path}")
        return self.config

    def get(self, section: str, name: str) -> Any:
        """
        Look up one setting.

        Raises:
            KeyError: unknown section or setting
        """
        if name not in self.config.get(section, {}):
            raise KeyError(f"Parameter '{section}.{name}' not found in configuration")
        return self.config[section][name]

    def update(self, section: str, name: str, value: Any) -> None:
        values = self.config.setdefault(section, {})
        previous = values.get(name)
        values[name] = value
        logger.info(f"{section}.{name}: {previous!r} -> {value!r}")

    def inchi_executable(self) -> Optional[Path]:
        executable = self.get('inchi', 'executable')
        return Path(executable).expanduser() if executable else None

    def save_config(self, path: Optional[Path] = None) -> None:
        """
        Write the current settings as YAML, to path or else where they were read from.

        Raises:
            ValueError: neither path nor config_path is known
        """
        target = path or self.config_path
        if not target:
            raise ValueError("Nowhere to save configuration: give a path")

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.config, f, default_flow_style=False, sort_keys=False, indent=2)
        logger.info(f"Configuration written to {target}")

    def get_all_config(self) -> dict[str, Any]:
        return copy.deepcopy(self.config)

    def reset_to_defaults(self) -> None:
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        logger.info("Configuration back to built-in defaults")

    def _merge_with_defaults(self, raw: dict) -> dict:
        # sections are merged one level deep; unknown sections are kept as given
        merged = copy.deepcopy(self.DEFAULT_CONFIG)
        for section, values in raw.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    def validate_config(self) -> list[str]:
        """
        Check the settings the tools depend on.

        Returns:
            One message per problem; empty when everything is usable
        """
        problems = []

        inchi = self.config.get('inchi', {})
        options = inchi.get('options')
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            problems.append("inchi.options must be a list of strings")
        timeout = inchi.get('timeout')
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            problems.append(f"inchi.timeout must be a positive number, got {timeout!r}")

        minchi = self.config.get('minchi', {})
        if not isinstance(minchi.get('version'), str) or not minchi.get('version'):
            problems.append("minchi.version must be a non-empty string")
        length = minchi.get('short_key_length')
        if not isinstance(length, int) or not 8 <= length <= 48:
            problems.append(f"minchi.short_key_length must be an integer between 8 and 48, got {length!r}")

        max_passes = self.config.get('normalization', {}).get('max_passes')
        if max_passes is not None and (not isinstance(max_passes, int) or max_passes < 1):
            problems.append("normalization.max_passes must be a positive integer")

        return problems
