from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import yaml

from .models import CacheSettings, _to_bool


logger = logging.getLogger(__name__)
_SETTINGS_CACHE: CacheSettings | None = None


def get_cache_settings() -> CacheSettings:
    """Return the cached cache settings, loading them if necessary."""

    global _SETTINGS_CACHE
    if _SETTINGS_CACHE is None:
        _SETTINGS_CACHE = _load_settings()
    return _SETTINGS_CACHE


def reload_cache_settings() -> CacheSettings:
    """Reload the settings from disk and environment, bypassing the cache."""

    global _SETTINGS_CACHE
    _SETTINGS_CACHE = _load_settings()
    return _SETTINGS_CACHE


def _load_settings() -> CacheSettings:
    raw = _load_raw_config()
    merged = _apply_env_overrides(raw)
    return CacheSettings.model_validate(merged)


def _load_raw_config() -> Dict[str, Any]:
    path = Path(os.getenv("NANOCACHE_CONFIG_FILE", "config/nanocache.yaml"))
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Unable to read config file at {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RuntimeError(f"Top-level structure in {path} must be a mapping.")
    section = data.get("cache", data)
    if not isinstance(section, dict):
        raise RuntimeError(f"'cache' section in {path} must be a mapping.")
    return section


def _apply_env_overrides(source: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = copy.deepcopy(source)
    for env_name, (field, transformer) in _ENV_MAPPING.items():
        raw_value = os.getenv(env_name)
        if raw_value is None or raw_value == "":
            continue
        try:
            result[field] = transformer(raw_value)
        except Exception as exc:
            logger.warning("Ignoring invalid value for %s: %s", env_name, exc)
    return result


def _to_int(value: str) -> int:
    return int(value.strip())


def _to_float(value: str) -> float:
    return float(value.strip())


_ENV_MAPPING: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "NANOCACHE_DEFAULT_TTL": ("default_ttl_seconds", _to_float),
    "NANOCACHE_MAX_ENTRIES": ("max_entries", _to_int),
    "NANOCACHE_REAP_INTERVAL": ("reap_interval_seconds", _to_float),
    "NANOCACHE_ALLOW_STALE": ("allow_stale", _to_bool),
    "NANOCACHE_STALE_WHILE_REVALIDATE": ("stale_while_revalidate_seconds", _to_float),
    "NANOCACHE_STALE_IF_ERROR": ("stale_if_error_seconds", _to_float),
    "NANOCACHE_CLONE_ON_ACCESS": ("clone_on_access", _to_bool),
}


__all__ = ["get_cache_settings", "reload_cache_settings"]
