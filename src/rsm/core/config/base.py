"""Base class for domain-specific configuration accessors."""
from __future__ import annotations

from abc import ABC, abstractmethod
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from .cache import get_cached_config


class BaseDomainConfig(ABC):
    """Abstract base class for domain-specific configuration accessors.

    Usage:
        class MyConfig(BaseDomainConfig):
            def _config_section(self) -> str:
                return "mySection"

            @cached_property
            def my_setting(self) -> str:
                return self.section.get("mySetting", "default")

        cfg = MyConfig(config_files=["rsm.yaml"])
        print(cfg.my_setting)
    """

    def __init__(
        self,
        config_files: Sequence[Path | str] = (),
        *,
        config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Initialize domain config.

        Args:
            config_files: YAML files layered over the bundled defaults.
            config: Already-loaded configuration; skips file loading when given.
        """
        if config is not None:
            self._config: Mapping[str, Any] = config
        else:
            self._config = get_cached_config(config_files=config_files)

    @abstractmethod
    def _config_section(self) -> str:
        """Return the top-level config key for this domain."""
        ...

    @cached_property
    def section(self) -> Dict[str, Any]:
        """This domain's configuration section (empty dict if missing)."""
        return dict(self._config.get(self._config_section(), {}) or {})


__all__ = ["BaseDomainConfig"]
