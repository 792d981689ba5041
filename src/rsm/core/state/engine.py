from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple

from ..exceptions import IllegalTransitionError, RetryExhaustedError, TransitionCancelledError
from .events import Handler, Stage, TransitionEvent, nil_handler
from .registry import HandlerRegistry, Sources
from .retry import RetryWait, StopSignal, wait_seconds

logger = logging.getLogger(__name__)


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class TransitionEngine:
    """Finite state machine with staged transition handlers and retries.

    Transition dispatch order:
    1. Global before hook
    2. BEFORE handlers registered for (current, destination)
    3. IN_PROGRESS handlers registered for (current, destination)
    4. Global finalize hook
    5. State commit
    6. AFTER handlers (failures are logged, never raised)
    7. Global after hook (failures are logged, never raised)

    Any failure in steps 1-4 is raised to the caller unchanged and leaves the
    current state untouched.

    The engine is not thread-safe: register handlers during setup and run
    transitions from one thread. ``stop()`` may be called from any thread.
    """

    def __init__(
        self,
        initial_state: Hashable,
        retry_wait: Optional[RetryWait] = None,
        max_retries: Optional[int] = None,
        *,
        parent: Any = None,
        config: Any = None,
    ) -> None:
        """Create an engine.

        Args:
            initial_state: Starting state
            retry_wait: ``attempt -> seconds`` (or ``timedelta``; ``inf`` waits
                for ``stop()``) used between retry attempts. Defaults to the
                configured exponential backoff.
            max_retries: Retries after the first attempt. Defaults to the
                configured ``retry.max_retries``.
            parent: Opaque owner object, available to handlers via
                ``event.engine.parent``
            config: ``RetryConfig`` supplying the defaults above

        Raises:
            ValueError: ``max_retries`` is negative.
            ConfigError: Defaults were needed and the loaded configuration is
                invalid. This includes any malformed ``RSM_*`` environment
                variable, even one not meant for this library.
        """
        if retry_wait is None or max_retries is None:
            if config is None:
                # Lazy import to avoid circular dependencies
                from rsm.core.config.domains.retry import RetryConfig

                config = RetryConfig()
            if retry_wait is None:
                retry_wait = config.backoff()
            if max_retries is None:
                max_retries = config.max_retries
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self._current_state: Hashable = initial_state
        self.retry_wait: RetryWait = retry_wait
        self.max_retries: int = int(max_retries)
        self.parent = parent

        self._registry = HandlerRegistry()
        self._before_transition: Optional[Handler] = None
        self._finalize_transition: Optional[Handler] = None
        self._after_transition: Optional[Handler] = None
        self._stop = StopSignal()

    def __repr__(self) -> str:
        return f"<TransitionEngine state={self._current_state!r}>"

    @property
    def current_state(self) -> Hashable:
        return self._current_state

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    # ----- global hooks -----

    def set_before_transition_handler(self, handler: Optional[Handler]) -> None:
        """Run ``handler`` before every transition (``None`` clears it)."""
        self._before_transition = handler

    def set_finalize_transition_handler(self, handler: Optional[Handler]) -> None:
        """Run ``handler`` after IN_PROGRESS handlers, before the commit."""
        self._finalize_transition = handler

    def set_after_transition_handler(self, handler: Optional[Handler]) -> None:
        """Run ``handler`` after every committed transition."""
        self._after_transition = handler

    # ----- registration -----

    def add_handler(
        self, sources: Sources, destination: Hashable, stage: Stage, handler: Handler
    ) -> None:
        self._registry.register(sources, destination, stage, handler)

    def add_before_handler(self, sources: Sources, destination: Hashable, handler: Handler) -> None:
        self.add_handler(sources, destination, Stage.BEFORE, handler)

    def add_after_handler(self, sources: Sources, destination: Hashable, handler: Handler) -> None:
        self.add_handler(sources, destination, Stage.AFTER, handler)

    def add_in_progress_handler(
        self, sources: Sources, destination: Hashable, handler: Optional[Handler] = None
    ) -> None:
        if handler is None:
            handler = nil_handler
        self.add_handler(sources, destination, Stage.IN_PROGRESS, handler)

    def add_transition(
        self, sources: Sources, destination: Hashable, handler: Optional[Handler] = None
    ) -> None:
        """Make ``sources -> destination`` legal, optionally with in-progress work."""
        self.add_in_progress_handler(sources, destination, handler)

    # ----- queries -----

    def can_transition_to(self, destination: Hashable) -> bool:
        return self._registry.has(self._current_state, destination, Stage.IN_PROGRESS)

    def allowed_targets(self) -> List[Hashable]:
        return self._registry.targets(self._current_state)

    def transitions(self) -> List[Tuple[Hashable, Hashable]]:
        return self._registry.transitions()

    def hooks(self) -> Dict[str, Optional[Handler]]:
        """Global hook slots keyed by "before", "finalize" and "after"."""
        return {
            "before": self._before_transition,
            "finalize": self._finalize_transition,
            "after": self._after_transition,
        }

    # ----- execution -----

    def _event(
        self, stage: Stage, source: Hashable, destination: Hashable, args: Tuple[Any, ...]
    ) -> TransitionEvent:
        return TransitionEvent(
            engine=self, stage=stage, source=source, destination=destination, args=args
        )

    def _run_all(self, handlers: Iterable[Handler], event: TransitionEvent) -> None:
        for handler in handlers:
            handler(event)

    def _run_swallowing(self, handlers: Iterable[Handler], event: TransitionEvent) -> None:
        # A committed state is never rolled back.
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.warning(
                    "Ignoring failure in %s handler %s for %r -> %r",
                    event.stage.name,
                    _handler_name(handler),
                    event.source,
                    event.destination,
                    exc_info=True,
                )

    def transit(self, destination: Hashable, *args: Any) -> None:
        """Move to ``destination``, running all handlers for the transition.

        Raises:
            IllegalTransitionError: No IN_PROGRESS handler is registered for
                (current state, destination).
            Exception: Whatever a before hook, BEFORE, IN_PROGRESS or finalize
                handler raised; the state is left unchanged.
        """
        source = self._current_state
        if not self.can_transition_to(destination):
            raise IllegalTransitionError(source, destination, allowed=self.allowed_targets())

        if self._before_transition is not None:
            self._before_transition(self._event(Stage.BEFORE, source, destination, args))

        before = self._registry.handlers(source, destination, Stage.BEFORE)
        if before:
            self._run_all(before, self._event(Stage.BEFORE, source, destination, args))

        in_progress = self._registry.handlers(source, destination, Stage.IN_PROGRESS)
        self._run_all(in_progress, self._event(Stage.IN_PROGRESS, source, destination, args))

        if self._finalize_transition is not None:
            self._finalize_transition(self._event(Stage.IN_PROGRESS, source, destination, args))

        self._current_state = destination
        logger.debug("Transitioned %r -> %r", source, destination)

        after = self._registry.handlers(source, destination, Stage.AFTER)
        if after:
            self._run_swallowing(after, self._event(Stage.AFTER, source, destination, args))

        if self._after_transition is not None:
            self._run_swallowing(
                (self._after_transition,), self._event(Stage.AFTER, source, destination, args)
            )

    def transit_with_retries(self, destination: Hashable, *args: Any) -> None:
        """Call ``transit`` until it succeeds, the budget is spent, or ``stop()``.

        Each cycle first waits ``retry_wait(attempt)`` (interruptible by
        ``stop()``), then attempts the transition. ``attempt`` starts at 1.
        At most ``max_retries + 1`` attempts are made.

        Raises:
            RetryExhaustedError: Every allowed attempt failed.
            TransitionCancelledError: ``stop()`` interrupted a wait.
        """
        attempt = 1
        last_error: Optional[Exception] = None

        while True:
            delay = wait_seconds(self.retry_wait(attempt))
            if delay is None:
                logger.debug("Waiting for stop before attempt %d to %r", attempt, destination)
            else:
                logger.debug("Waiting %.3fs before attempt %d to %r", delay, attempt, destination)
            if self._stop.wait(delay):
                logger.info("Transition to %r cancelled after %d attempt(s)", destination, attempt - 1)
                raise TransitionCancelledError(
                    destination, attempts=attempt - 1, last_error=last_error
                ) from last_error

            if attempt - 1 > self.max_retries:
                logger.error(
                    "Transition %r -> %r failed after %d attempt(s)",
                    self._current_state,
                    destination,
                    attempt - 1,
                )
                raise RetryExhaustedError(
                    self._current_state,
                    destination,
                    attempts=attempt - 1,
                    last_error=last_error,
                ) from last_error

            try:
                self.transit(destination, *args)
                return
            except Exception as exc:
                logger.warning(
                    "Attempt %d/%d to %r failed: %s",
                    attempt,
                    self.max_retries + 1,
                    destination,
                    exc,
                )
                last_error = exc
                attempt += 1

    def stop(self) -> bool:
        """Wake a waiting ``transit_with_retries`` loop so it cancels.

        Returns False when no loop was waiting; the stop is then dropped.
        """
        return self._stop.fire()


__all__ = ["TransitionEngine"]
