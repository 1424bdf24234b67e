"""Load global tunables from ``config/global_config.yml``.

The YAML file is merged over built-in defaults so a partial file (or no
file at all) still yields a complete configuration.  The result is cached;
tests call :func:`reset_global_config` between cases.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from supermind.constants import DEFAULT_GATEWAY_URL, DEFAULT_TIMEOUT_S

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "config" / "global_config.yml"

_DEFAULTS: dict[str, Any] = {
    "upstream": "gateway",
    "gateway_url": DEFAULT_GATEWAY_URL,
    "timeout_s": DEFAULT_TIMEOUT_S,
    "stream": False,
    "embed_charts": True,
    "tweaks": {},
}

_cached: dict[str, Any] | None = None


def _config_path() -> Path:
    override = os.environ.get("SUPERMIND_CONFIG")
    return Path(override) if override else _DEFAULT_CONFIG_PATH


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Read a config file and merge it over the defaults.

    A missing file yields the defaults.  A file that is not a YAML mapping
    is rejected with ``ValueError``.
    """
    cfg = copy.deepcopy(_DEFAULTS)
    cfg_path = Path(path) if path is not None else _config_path()
    if not cfg_path.exists():
        logger.debug("No config file at %s; using defaults", cfg_path)
        return cfg

    with open(cfg_path, "r", encoding="utf-8") as fh:
        loaded = yaml.safe_load(fh) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {cfg_path} must contain a mapping")

    cfg.update(loaded)
    logger.debug("Loaded config from %s", cfg_path)
    return cfg


def get_global_config() -> dict[str, Any]:
    """Return the cached global configuration, loading it on first use."""
    global _cached
    if _cached is None:
        _cached = load_config()
    return _cached


def reset_global_config() -> None:
    """Drop the cached configuration."""
    global _cached
    _cached = None
