"""Build engines from declarative (YAML) machine definitions.

Definitions name their handlers; names are resolved through a
:class:`HandlerCatalog`. Example definition::

    machine:
      initial: start
      retry: {max_retries: 2}
      hooks: {after: audit}
      transitions:
        - from: [start, paused]
          to: running
          before: [check_inventory]
          in_progress: [reserve]
          then: done
        - from: running
          to: done

Register handlers on the module-level catalog with the decorator::

    @register_handler("reserve")
    def reserve(event):
        ...
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from ..exceptions import MachineDefinitionError
from ..schemas import SchemaValidationError, validate_payload
from .engine import TransitionEngine
from .events import Handler, nil_handler, transition_to

logger = logging.getLogger(__name__)

Definition = Union[Mapping[str, Any], str, Path]


class HandlerCatalog:
    """Named handlers available to machine definitions."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}
        self.register_defaults()

    def register(self, name: str, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError("handler must be callable")
        self._handlers[name] = handler

    def get(self, name: str) -> Optional[Handler]:
        return self._handlers.get(name)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def list_handlers(self) -> Dict[str, Handler]:
        return dict(self._handlers)

    def resolve(self, name: str) -> Handler:
        handler = self.get(name)
        if handler is None:
            raise MachineDefinitionError(
                f"Unknown handler: {name}",
                context={"handler": name, "known": sorted(self._handlers)},
            )
        return handler

    def reset(self) -> None:
        """Clear all handlers and reload defaults."""
        self._handlers.clear()
        self.register_defaults()

    def register_defaults(self) -> None:
        self._handlers["noop"] = nil_handler


# Global catalog instance
registry = HandlerCatalog()


def register_handler(name: str) -> Callable[[Handler], Handler]:
    """Decorator to register a handler on the global catalog."""

    def decorator(fn: Handler) -> Handler:
        registry.register(name, fn)
        return fn

    return decorator


def _read_definition(definition: Definition) -> Dict[str, Any]:
    if isinstance(definition, Mapping):
        return dict(definition)

    path = Path(definition)
    if not path.exists():
        raise MachineDefinitionError(
            f"Machine definition not found: {path}", context={"path": str(path)}
        )
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise MachineDefinitionError(
            f"Invalid YAML in {path}: {exc}", context={"path": str(path)}
        ) from exc
    if not isinstance(data, dict):
        raise MachineDefinitionError(
            f"Machine definition {path} must be a mapping", context={"path": str(path)}
        )
    return data


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def load_machine(
    definition: Definition,
    *,
    catalog: Optional[HandlerCatalog] = None,
    config: Any = None,
    parent: Any = None,
) -> TransitionEngine:
    """Create a :class:`TransitionEngine` from a definition mapping or YAML file.

    Args:
        definition: Mapping with a top-level ``machine`` key, or a path to YAML
        catalog: Handler names lookup (defaults to the global catalog)
        config: ``RetryConfig`` for retry settings the definition omits
        parent: Passed through to the engine

    Raises:
        MachineDefinitionError: Schema violation or unknown handler name.
    """
    handlers = catalog if catalog is not None else registry
    data = _read_definition(definition)

    try:
        validate_payload(data, "machine.schema.yaml")
    except SchemaValidationError as exc:
        raise MachineDefinitionError(str(exc), context={"errors": exc.errors}) from exc

    machine = data["machine"]
    retry = machine.get("retry") or {}
    if retry:
        # Lazy import to avoid circular dependencies
        from rsm.core.config.domains.retry import RetryConfig

        base = config if config is not None else RetryConfig()
        config = RetryConfig(config={"retry": {**base.section, **retry}})

    engine = TransitionEngine(
        machine["initial"],
        parent=parent,
        config=config,
    )

    hooks = machine.get("hooks") or {}
    if "before" in hooks:
        engine.set_before_transition_handler(handlers.resolve(hooks["before"]))
    if "finalize" in hooks:
        engine.set_finalize_transition_handler(handlers.resolve(hooks["finalize"]))
    if "after" in hooks:
        engine.set_after_transition_handler(handlers.resolve(hooks["after"]))

    for transition in machine["transitions"]:
        sources = _as_list(transition["from"])
        destination = transition["to"]

        for name in transition.get("before") or []:
            engine.add_before_handler(sources, destination, handlers.resolve(name))

        in_progress = transition.get("in_progress") or []
        if not in_progress:
            engine.add_transition(sources, destination)
        for name in in_progress:
            engine.add_in_progress_handler(sources, destination, handlers.resolve(name))

        for name in transition.get("after") or []:
            engine.add_after_handler(sources, destination, handlers.resolve(name))

        if transition.get("then"):
            engine.add_after_handler(sources, destination, transition_to(transition["then"]))

    logger.debug(
        "Loaded machine %r with %d transition(s)",
        machine.get("name") or machine["initial"],
        len(engine.transitions()),
    )
    return engine


__all__ = ["HandlerCatalog", "registry", "register_handler", "load_machine"]
