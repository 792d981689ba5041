"""Transition events and handler helpers.

A handler is any callable taking a :class:`TransitionEvent`. Raising an
exception signals failure; the return value is ignored.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Hashable, Tuple

if TYPE_CHECKING:
    from .engine import TransitionEngine


class Stage(Enum):
    """When a handler runs relative to the state commit."""

    BEFORE = 0
    IN_PROGRESS = 1
    AFTER = 2


@dataclass(frozen=True)
class TransitionEvent:
    """Snapshot passed to every handler invocation.

    Attributes:
        engine: Engine running the transition (handlers may call back into it)
        stage: Stage being dispatched
        source: State the transition started from
        destination: Requested state
        args: Positional arguments given to ``transit``, in call order
    """

    engine: "TransitionEngine"
    stage: Stage
    source: Hashable
    destination: Hashable
    args: Tuple[Any, ...] = ()


Handler = Callable[[TransitionEvent], Any]


def nil_handler(event: TransitionEvent) -> None:
    """No-op handler; registering it only makes a transition legal."""
    return None


def transition_to(state: Hashable) -> Handler:
    """Create a handler that transitions the engine to ``state``.

    Typically registered as an AFTER handler to chain transitions::

        engine.add_transition("start", "middle")
        engine.add_transition("middle", "end")
        engine.add_after_handler("start", "middle", transition_to("end"))

        engine.transit("middle")  # ends up in "end"

    The chained call runs on the same call stack as the outer ``transit``;
    cyclic chains recurse until the interpreter's recursion limit.
    """

    def _handler(event: TransitionEvent) -> None:
        event.engine.transit(state, *event.args)

    _handler.__name__ = f"transition_to_{state}"
    return _handler


__all__ = ["Stage", "TransitionEvent", "Handler", "nil_handler", "transition_to"]
