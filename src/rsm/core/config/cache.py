"""Centralized configuration caching.

Single source of truth for loaded configuration across domain configs.
Cache keys cover the requested config files (with their mtimes) and the
``RSM_*`` environment, so edits and env changes are picked up.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

_config_cache: Dict[str, Dict[str, Any]] = {}


def _normalize_files(config_files: Sequence[Path | str]) -> Tuple[Path, ...]:
    return tuple(Path(p).expanduser().resolve() for p in config_files)


def _cache_key(config_files: Tuple[Path, ...], validate: bool) -> str:
    env_items = sorted(
        (k, os.environ.get(k, ""))
        for k in os.environ.keys()
        if k.startswith("RSM_")
    )
    env_fp = hashlib.sha256(repr(env_items).encode("utf-8")).hexdigest()[:12]

    files: list[tuple[str, int, int]] = []
    for p in config_files:
        try:
            st = p.stat()
            files.append((str(p), int(st.st_mtime_ns), int(st.st_size)))
        except OSError:
            files.append((str(p), 0, 0))
    cfg_fp = hashlib.sha256(repr(files).encode("utf-8")).hexdigest()[:12]

    return f"validate={validate}:env={env_fp}:cfg={cfg_fp}"


def get_cached_config(
    config_files: Sequence[Path | str] = (),
    validate: bool = True,
) -> Dict[str, Any]:
    """Get configuration with caching.

    Returns the same dict instance for the same inputs (treat as immutable).
    """
    files = _normalize_files(config_files)
    key = _cache_key(files, validate)
    if key not in _config_cache:
        # Lazy import to avoid circular dependency
        from .manager import ConfigManager

        manager = ConfigManager(config_files=files)
        _config_cache[key] = manager._load_config_uncached(validate=validate)
    return _config_cache[key]


def clear_all_caches() -> None:
    """Clear the configuration cache and bundled data reads.

    Call this when configuration files have changed and need to be reloaded.
    """
    _config_cache.clear()
    # Lazy import to avoid circular dependency
    from rsm.data import clear_caches

    clear_caches()


def is_cached(config_files: Sequence[Path | str] = (), validate: bool = True) -> bool:
    return _cache_key(_normalize_files(config_files), validate) in _config_cache


__all__ = ["get_cached_config", "clear_all_caches", "is_cached"]
