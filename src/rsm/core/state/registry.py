"""Transition handler registry.

Handlers are keyed by ``(source, destination, stage)``. Each key holds an
ordered list; insertion order is execution order and duplicates are kept.

Example usage:
    registry.register(["start", "paused"], "running", Stage.IN_PROGRESS, start_fn)
    registry.handlers("start", "running", Stage.IN_PROGRESS)  # (start_fn,)
"""

from __future__ import annotations

from collections import abc
from typing import Dict, Hashable, Iterable, List, Tuple, Union

from .events import Handler, Stage

TransitionKey = Tuple[Hashable, Hashable, Stage]
Sources = Union[Hashable, Iterable[Hashable]]


def iter_sources(sources: Sources) -> List[Hashable]:
    """Normalize a single state or a collection of states to a list.

    Strings (and ``str`` enums) are treated as a single state. Any other
    iterable (list, tuple, set, generator, ``dict.keys()``) registers each of
    its items as a source state.

    Raises:
        TypeError: ``sources`` or one of its items is not hashable.
    """
    if isinstance(sources, (str, bytes)):
        items = [sources]
    elif isinstance(sources, abc.Iterable):
        items = list(sources)
    else:
        items = [sources]
    for item in items:
        if not isinstance(item, abc.Hashable):
            raise TypeError(f"state must be hashable, got {type(item).__name__}")
    return items


class HandlerRegistry:
    """Ordered handler lists keyed by transition and stage."""

    def __init__(self) -> None:
        self._handlers: Dict[TransitionKey, List[Handler]] = {}

    @staticmethod
    def _make_key(source: Hashable, destination: Hashable, stage: Stage) -> TransitionKey:
        return (source, destination, Stage(stage))

    def register(
        self,
        sources: Sources,
        destination: Hashable,
        stage: Stage,
        handler: Handler,
    ) -> None:
        """Append ``handler`` for every source state in ``sources``."""
        if not callable(handler):
            raise TypeError("handler must be callable")
        for source in iter_sources(sources):
            key = self._make_key(source, destination, stage)
            self._handlers.setdefault(key, []).append(handler)

    def handlers(self, source: Hashable, destination: Hashable, stage: Stage) -> Tuple[Handler, ...]:
        """Snapshot of the handlers for a key (empty tuple if none)."""
        return tuple(self._handlers.get(self._make_key(source, destination, stage), ()))

    def has(self, source: Hashable, destination: Hashable, stage: Stage) -> bool:
        return self._make_key(source, destination, stage) in self._handlers

    def transitions(self) -> List[Tuple[Hashable, Hashable]]:
        """Legal ``(source, destination)`` edges in registration order."""
        return [
            (source, destination)
            for (source, destination, stage) in self._handlers
            if stage is Stage.IN_PROGRESS
        ]

    def targets(self, source: Hashable) -> List[Hashable]:
        """Legal destinations from ``source`` in registration order."""
        return [dest for (src, dest) in self.transitions() if src == source]

    def count(self, source: Hashable, destination: Hashable, stage: Stage) -> int:
        return len(self._handlers.get(self._make_key(source, destination, stage), ()))

    def reset(self) -> None:
        """Remove every registration."""
        self._handlers.clear()


__all__ = ["HandlerRegistry", "TransitionKey", "iter_sources"]
