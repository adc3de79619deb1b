"""Configuration manager for kbgraph CLI using TOML files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import toml

from .errors import ConfigError

BASE_DIR = Path(os.environ.get("KBGRAPH_HOME", str(Path.home() / ".kbgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"


DEFAULT_KIBANA_CONFIG: Dict[str, Any] = {
    "url": "",
    "username": "",
    "password": "",
    "api_key": "",
    "ca_cert": "",
    "timeout": 30.0,
    "max_retries": 3,
    "default_space": "default",
}

# Environment variable -> config key
ENV_OVERRIDES = {
    "KIBANA_URL": "url",
    "KIBANA_USERNAME": "username",
    "KIBANA_PASSWORD": "password",
    "KIBANA_API_KEY": "api_key",
    "KIBANA_CA_CERT": "ca_cert",
    "KIBANA_TIMEOUT": "timeout",
    "KIBANA_MAX_RETRIES": "max_retries",
    "KIBANA_DEFAULT_SPACE": "default_space",
}


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    path = config_file or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc


def _save_full_config(config: Dict[str, Any], config_file: Optional[Path] = None) -> Path:
    """Write entire config dict to TOML file, preserving all sections."""
    path = config_file or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        toml.dump(config, f)
    return path


def _coerce(key: str, value: Any) -> Any:
    if key == "timeout":
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid timeout: {value!r}") from exc
    if key == "max_retries":
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid max_retries: {value!r}") from exc
    return "" if value is None else str(value)


def load_kibana_config(config_file: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Load Kibana connection settings.

    Values are resolved in order: built-in defaults, the ``[kibana]``
    section of the TOML file, then ``KIBANA_*`` environment variables.

    Args:
        config_file: Alternate TOML file (defaults to ``~/.kbgraph/config.toml``)
        environ: Alternate environment mapping (defaults to ``os.environ``)

    Returns:
        Dictionary with every key of :data:`DEFAULT_KIBANA_CONFIG`.
    """
    env = os.environ if environ is None else environ
    config = DEFAULT_KIBANA_CONFIG.copy()

    section = load_full_config(config_file).get("kibana", {})
    for key, value in section.items():
        if key in config:
            config[key] = _coerce(key, value)

    for env_name, key in ENV_OVERRIDES.items():
        if env.get(env_name):
            config[key] = _coerce(key, env[env_name])

    return config


def save_kibana_config(values: Dict[str, Any], config_file: Optional[Path] = None) -> Path:
    """Merge ``values`` into the ``[kibana]`` section and persist it.

    Preserves other sections in the file. Empty values are skipped so an
    existing setting is never blanked by an omitted option.
    """
    config = load_full_config(config_file)
    section = config.get("kibana", {})
    for key, value in values.items():
        if key not in DEFAULT_KIBANA_CONFIG:
            raise ConfigError(f"Unknown Kibana setting: {key}")
        if value in (None, ""):
            continue
        section[key] = _coerce(key, value)
    config["kibana"] = section
    return _save_full_config(config, config_file)


def clear_kibana_config(config_file: Optional[Path] = None) -> bool:
    """Remove the ``[kibana]`` section. Returns False if there was none."""
    config = load_full_config(config_file)
    if "kibana" not in config:
        return False
    del config["kibana"]
    _save_full_config(config, config_file)
    return True


def validate_url(url: str) -> str:
    """Return ``url`` without a trailing slash, or raise :class:`ConfigError`."""
    url = (url or "").strip()
    if not url:
        raise ConfigError("Kibana URL cannot be empty")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError("Invalid Kibana URL format")
    return url.rstrip("/")
