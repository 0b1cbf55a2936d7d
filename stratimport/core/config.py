"""
Settings for stratimport.

``config.yaml`` ships inside the package and holds the logging level, the API
upload cap, the mapping score weights and the import policy presets. It is
parsed once and cached; ``get_config(reload=True)`` re-reads it.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

_settings: Optional[Dict[str, Any]] = None


def _read_settings(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise FileNotFoundError(f"Settings file missing: {path}")
    with path.open(encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    return data if isinstance(data, dict) else {}


def get_config(reload: bool = False) -> Dict[str, Any]:
    """Return the parsed settings, reading config.yaml on first use."""
    global _settings
    if reload or _settings is None:
        _settings = _read_settings(CONFIG_PATH)
    return _settings


def get_config_value(*keys: str, default: Any = None) -> Any:
    """
    Walk nested settings by key path.

    ``get_config_value("scoring", "weights", "header")`` returns the header
    weight. Any missing key, or a path that runs into a scalar, yields
    ``default``.
    """
    node: Any = get_config()
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``overrides`` merged in, recursing into dicts."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
