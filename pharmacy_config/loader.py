"""
Settings loader (``pharmacy_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into ``EngineSettings``.
Keys absent from the file keep their packaged defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or a non-mapping document  -> ``ValueError``.
* Invalid values  -> ``ValueError`` from ``EngineSettings``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from pharmacy_config.schema import EngineSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings document must be a mapping")
    return data


def parse_settings(data: dict[str, Any], base: EngineSettings | None = None) -> EngineSettings:
    """Overlay ``data`` on ``base`` (or the dataclass defaults)."""
    unknown = set(data) - EngineSettings.field_names()
    if unknown:
        raise ValueError(f"Unknown settings keys: {sorted(unknown)}")

    values: dict[str, Any] = {}
    if base is not None:
        values = {name: getattr(base, name) for name in EngineSettings.field_names()}
    values.update(data)
    return EngineSettings(**values)
