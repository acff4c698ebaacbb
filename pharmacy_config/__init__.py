"""
pharmacy_config -- typed settings for the stock and pricing engine.

Responsibility:
    Provides ``get_settings()`` (packaged defaults) and
    ``load_settings(path)`` (defaults overlaid with a YAML file).  Engines
    and services receive an ``EngineSettings`` instance; none of them read
    files or environment variables themselves.

Architecture position:
    Configuration.  Sits beside ``pharmacy_kernel``; the kernel services
    accept settings as a constructor argument.

Failure modes:
    - ``FileNotFoundError`` -- explicit path (or PHARMACY_ENGINE_CONFIG)
      does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from pharmacy_config.loader import load_yaml_file, parse_settings
from pharmacy_config.schema import EngineSettings

_logger = logging.getLogger("pharmacy_engine.config")

CONFIG_ENV_VAR = "PHARMACY_ENGINE_CONFIG"

_DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Packaged defaults from ``defaults.yaml``."""
    return parse_settings(load_yaml_file(_DEFAULTS_FILE))


def load_settings(path: str | Path | None = None) -> EngineSettings:
    """
    Load settings from ``path``, or from $PHARMACY_ENGINE_CONFIG when unset.

    With neither given, returns the packaged defaults.  Keys missing from
    the file keep their default values.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return get_settings()

    settings = parse_settings(load_yaml_file(Path(path)), base=get_settings())
    _logger.info(
        "settings_loaded",
        extra={
            "path": str(path),
            "cas_max_attempts": settings.cas_max_attempts,
            "invoice_number_prefix": settings.invoice_number_prefix,
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "EngineSettings",
    "get_settings",
    "load_settings",
]
