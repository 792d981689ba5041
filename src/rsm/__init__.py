"""rsm: embeddable finite state machine with staged handlers and retries.

Example:
    >>> from rsm import TransitionEngine
    >>> engine = TransitionEngine("idle", retry_wait=lambda attempt: 0.1, max_retries=3)
    >>> engine.add_transition("idle", "running")
    >>> engine.transit("running")
    >>> engine.current_state
    'running'
"""

from __future__ import annotations

from .core.composition import render_state_machine_doc
from .core.config import ConfigManager, RetryConfig
from .core.exceptions import (
    ConfigError,
    IllegalTransitionError,
    MachineDefinitionError,
    RetryExhaustedError,
    RsmError,
    TransitionCancelledError,
)
from .core.state import (
    Handler,
    HandlerCatalog,
    HandlerRegistry,
    Stage,
    StopSignal,
    TransitionEngine,
    TransitionEvent,
    exponential_backoff,
    handler_registry,
    load_machine,
    nil_handler,
    register_handler,
    transition_to,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "TransitionEngine",
    "TransitionEvent",
    "Stage",
    "Handler",
    "HandlerRegistry",
    "StopSignal",
    "nil_handler",
    "transition_to",
    "exponential_backoff",
    "HandlerCatalog",
    "handler_registry",
    "register_handler",
    "load_machine",
    "render_state_machine_doc",
    "ConfigManager",
    "RetryConfig",
    "RsmError",
    "IllegalTransitionError",
    "RetryExhaustedError",
    "TransitionCancelledError",
    "MachineDefinitionError",
    "ConfigError",
]
