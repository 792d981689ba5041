"""
rsm configuration management (YAML layers + environment overrides).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import yaml

from rsm.core.exceptions import ConfigError
from rsm.core.schemas import SchemaValidationError, validate_payload
from rsm.core.utils import deep_merge
from rsm.data import get_data_path

from .cache import get_cached_config

logger = logging.getLogger(__name__)


class ConfigManager:
    """Load, merge, and validate rsm configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: RSM_<section>__<key>
    2. Caller config files, in the order given (later files win)
    3. Bundled defaults: rsm.data/config/defaults.yaml
    """

    ENV_PREFIX = "RSM_"

    def __init__(self, config_files: Sequence[Path | str] = ()) -> None:
        self.core_config_path = get_data_path("config", "defaults.yaml")
        self.config_files: List[Path] = [Path(p) for p in config_files]

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        return deep_merge(base, override)

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        # Fail closed: configuration must never silently ignore invalid YAML.
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}", context={"path": str(path)})
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {path} must contain a mapping, got {type(data).__name__}",
                context={"path": str(path)},
            )
        return data

    def validate_schema(self, config: Dict[str, Any], schema_name: str) -> None:
        try:
            validate_payload(config, schema_name)
        except SchemaValidationError as exc:
            raise ConfigError(str(exc), context={"errors": exc.errors}) from exc

    # ========== Environment overrides ==========

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[str]:
        segs = raw.split("__")
        if any(seg == "" for seg in segs):
            raise ConfigError(
                f"Malformed {self.ENV_PREFIX}* key: empty segment in '{raw}'.",
                context={"key": raw},
            )
        # Normalize to lowercase so env overrides create canonical keys.
        return [seg.lower() for seg in segs]

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(self.ENV_PREFIX):
                continue
            raw = key[len(self.ENV_PREFIX) :]
            if not raw:
                continue
            yield self._parse_env_key(raw), self._coerce_type(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[str], value: Any) -> None:
        cur = root
        for part in path[:-1]:
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[part] = nxt
            cur = nxt
        cur[path[-1]] = value

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, typed_value in self._iter_env_overrides():
            logger.debug("Applying env override %s=%r", ".".join(path), typed_value)
            self._set_nested(cfg, path, typed_value)

    # ========== Loading ==========

    def _load_config_uncached(self, validate: bool = True) -> Dict[str, Any]:
        """Load and merge configuration from all sources (UNCACHED)."""
        # Layer 1: bundled defaults
        cfg = self.load_yaml(self.core_config_path)

        # Layer 2: caller files
        for path in self.config_files:
            cfg = self.deep_merge(cfg, self.load_yaml(path))

        # Layer 3: environment overrides
        self.apply_env_overrides(cfg)

        if validate:
            self.validate_schema(cfg, "config.schema.yaml")

        return cfg

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Return the merged configuration (cached)."""
        return get_cached_config(config_files=self.config_files, validate=validate)


__all__ = ["ConfigManager"]
