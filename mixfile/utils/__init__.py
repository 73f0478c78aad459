"""Shared utilities."""

from mixfile.utils.config_manager import ConfigManager

__all__ = ['ConfigManager']
