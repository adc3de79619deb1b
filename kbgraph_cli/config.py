"""Kibana connection defaults for kbgraph CLI."""

from __future__ import annotations

import logging

from .config_manager import BASE_DIR, CONFIG_FILE, DEFAULT_KIBANA_CONFIG, load_kibana_config
from .errors import ConfigError

logger = logging.getLogger(__name__)

# Load configuration from ~/.kbgraph/config.toml + KIBANA_* env (set via `kbg config set-kibana`)
try:
    _kibana_config = load_kibana_config()
except ConfigError as exc:
    logger.warning("Ignoring Kibana config: %s", exc)
    _kibana_config = DEFAULT_KIBANA_CONFIG.copy()

KIBANA_URL = _kibana_config["url"]
KIBANA_USERNAME = _kibana_config["username"]
KIBANA_PASSWORD = _kibana_config["password"]
KIBANA_API_KEY = _kibana_config["api_key"]
KIBANA_CA_CERT = _kibana_config["ca_cert"]
KIBANA_TIMEOUT = _kibana_config["timeout"]
KIBANA_MAX_RETRIES = _kibana_config["max_retries"]
DEFAULT_SPACE = _kibana_config["default_space"]

# Analysis defaults
DEFAULT_MAX_DEPTH = 5
DEFAULT_MAX_DASHBOARDS = 50

__all__ = [
    "BASE_DIR",
    "CONFIG_FILE",
    "KIBANA_URL",
    "KIBANA_USERNAME",
    "KIBANA_PASSWORD",
    "KIBANA_API_KEY",
    "KIBANA_CA_CERT",
    "KIBANA_TIMEOUT",
    "KIBANA_MAX_RETRIES",
    "DEFAULT_SPACE",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_DASHBOARDS",
]
