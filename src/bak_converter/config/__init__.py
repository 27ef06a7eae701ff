"""Configuration management: TOML loading, environment overrides and models.

Usage:
    >>> from bak_converter.config import load_config, ConverterConfig, ServerProfile
"""

from bak_converter.config.loader import load_config
from bak_converter.config.models import ConverterConfig, ServerProfile

__all__ = ["load_config", "ConverterConfig", "ServerProfile"]
