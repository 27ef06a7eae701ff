"""Configuration loading from ``bak-converter.toml`` plus environment overrides."""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from bak_converter.config.models import ConverterConfig, ServerProfile

DEFAULT_CONFIG_FILE = "bak-converter.toml"

# Environment variable -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "MSSQL_HOST": ("server", "host"),
    "MSSQL_PORT": ("server", "port"),
    "MSSQL_SA_PASSWORD": ("server", "password"),
    "BAK_CONVERTER_DATA_DIR": ("converter", "data_dir"),
    "BAK_CONVERTER_UPLOAD_DIR": ("converter", "upload_dir"),
}


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ConverterConfig:
    """Load converter configuration from TOML and the environment.

    Args:
        config_path: Path to a TOML file with optional ``[server]`` and
            ``[converter]`` tables.  When ``None``, ``bak-converter.toml``
            in the current directory is used if it exists; otherwise all
            defaults apply.
        env: Environment mapping for overrides (default: ``os.environ``).

    Returns:
        Validated ``ConverterConfig``.

    Raises:
        FileNotFoundError: If an explicitly given *config_path* does not exist.
        ValueError: If a value fails validation.

    Example:
        config = load_config(Path("bak-converter.toml"))
        config.server.host
    """
    env = os.environ if env is None else env

    if config_path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_FILE
        data = _read_toml(candidate) if candidate.exists() else {}
    else:
        if not config_path.exists():
            raise FileNotFoundError(f"Converter config not found: {config_path}")
        data = _read_toml(config_path)

    server_data = dict(data.get("server", {}))
    converter_data = dict(data.get("converter", {}))

    sections = {"server": server_data, "converter": converter_data}
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            sections[section][key] = value

    return ConverterConfig(server=ServerProfile(**server_data), **converter_data)


def _read_toml(path: Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)
