from .engine import TransitionEngine
from .events import Handler, Stage, TransitionEvent, nil_handler, transition_to
from .loader import HandlerCatalog, load_machine, register_handler
from .loader import registry as handler_registry
from .registry import HandlerRegistry
from .retry import StopSignal, exponential_backoff


__all__ = [
    # Core engine
    "TransitionEngine",
    "HandlerRegistry",
    # Events and handlers
    "Stage",
    "TransitionEvent",
    "Handler",
    "nil_handler",
    "transition_to",
    # Retry primitives
    "StopSignal",
    "exponential_backoff",
    # Declarative definitions
    "HandlerCatalog",
    "handler_registry",
    "register_handler",
    "load_machine",
]
