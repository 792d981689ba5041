from __future__ import annotations

from typing import Any, Dict, Hashable, Mapping, Optional


class RsmError(Exception):
    """Base exception for the rsm engine."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": {k: _json_safe(v) for k, v in self.context.items()},
        }


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return str(value)


class IllegalTransitionError(RsmError, ValueError):
    """Raised when no in-progress handler is registered for the requested move."""

    def __init__(
        self,
        source: Hashable,
        destination: Hashable,
        *,
        allowed: Optional[list] = None,
    ) -> None:
        self.source = source
        self.destination = destination
        allowed = list(allowed or [])
        allowed_part = f" Allowed next: {', '.join(str(a) for a in allowed)}." if allowed else ""
        message = f"Cannot transition from {source!r} to {destination!r}.{allowed_part}"
        ctx = {"from": source, "to": destination, "allowed": allowed}
        RsmError.__init__(self, message, context=ctx)
        ValueError.__init__(self, message)


class RetryExhaustedError(RsmError, RuntimeError):
    """Raised when a retried transition used up its retry budget."""

    def __init__(
        self,
        source: Hashable,
        destination: Hashable,
        *,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.source = source
        self.destination = destination
        self.attempts = attempts
        self.last_error = last_error
        message = (
            f"Error transitioning from {source!r} to {destination!r} "
            f"after {attempts} attempt(s) with error: {last_error}"
        )
        ctx = {"from": source, "to": destination, "attempts": attempts}
        RsmError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)


class TransitionCancelledError(RsmError):
    """Raised when a retry loop is woken by the engine's stop signal.

    ``last_error`` holds the most recent attempt failure, or ``None`` when the
    loop was stopped before any attempt failed.
    """

    def __init__(
        self,
        destination: Hashable,
        *,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.destination = destination
        self.attempts = attempts
        self.last_error = last_error
        reason = f" (last error: {last_error})" if last_error is not None else ""
        super().__init__(
            f"Transition to {destination!r} cancelled{reason}",
            context={"to": destination, "attempts": attempts},
        )


class MachineDefinitionError(RsmError, ValueError):
    """Raised when a declarative machine definition is invalid."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RsmError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class ConfigError(RsmError, ValueError):
    """Raised when configuration cannot be loaded or fails validation."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        RsmError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "RsmError",
    "IllegalTransitionError",
    "RetryExhaustedError",
    "TransitionCancelledError",
    "MachineDefinitionError",
    "ConfigError",
]
