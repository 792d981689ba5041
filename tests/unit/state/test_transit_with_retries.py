"""Tests for ``transit_with_retries`` and ``stop``."""
import time
from datetime import timedelta

import pytest

from rsm import RetryExhaustedError, TransitionCancelledError, TransitionEngine
from helpers.engines import BackgroundCall, fast_wait, wait_until


def test_succeeds_on_third_attempt(engine, failure):
    attempts = []
    calls = [0]

    def success_after_3(event):
        calls[0] += 1
        if calls[0] < 3:
            raise failure

    def wait(attempt):
        attempts.append(attempt)
        return 0.001

    engine.retry_wait = wait
    engine.add_transition("start", "end")
    engine.add_before_handler("start", "end", success_after_3)

    engine.transit_with_retries("end")

    assert calls[0] == 3
    assert attempts == [1, 2, 3]
    assert engine.current_state == "end"


def test_always_failing_exhausts_after_max_retries_plus_one(failure):
    calls = [0]

    def always_fail(event):
        calls[0] += 1
        raise failure

    engine = TransitionEngine("start", fast_wait, 4)
    engine.add_transition("start", "fail", always_fail)

    with pytest.raises(RetryExhaustedError) as exc_info:
        engine.transit_with_retries("fail")

    err = exc_info.value
    assert calls[0] == 5
    assert err.attempts == 5
    assert err.last_error is failure
    assert err.__cause__ is failure
    assert err.source == "start"
    assert err.destination == "fail"
    assert "'start'" in str(err) and "'fail'" in str(err)
    assert engine.current_state == "start"


def test_zero_retries_means_single_attempt(failure):
    calls = [0]

    def always_fail(event):
        calls[0] += 1
        raise failure

    engine = TransitionEngine("start", fast_wait, 0)
    engine.add_transition("start", "fail", always_fail)

    with pytest.raises(RetryExhaustedError):
        engine.transit_with_retries("fail")
    assert calls[0] == 1


def test_illegal_transition_is_retried_then_exhausted():
    engine = TransitionEngine("start", fast_wait, 2)

    with pytest.raises(RetryExhaustedError) as exc_info:
        engine.transit_with_retries("nowhere")

    assert exc_info.value.attempts == 3
    assert type(exc_info.value.last_error).__name__ == "IllegalTransitionError"


def test_args_are_passed_to_every_attempt(engine, failure):
    seen = []

    def flaky(event):
        seen.append(event.args)
        if len(seen) < 2:
            raise failure

    engine.add_transition("start", "end", flaky)
    engine.transit_with_retries("end", "a", 1)

    assert seen == [("a", 1), ("a", 1)]


def test_timedelta_backoff_is_accepted():
    engine = TransitionEngine("start", lambda attempt: timedelta(milliseconds=1), 1)
    engine.add_transition("start", "end")

    engine.transit_with_retries("end")
    assert engine.current_state == "end"


def test_negative_max_retries_rejected():
    with pytest.raises(ValueError):
        TransitionEngine("start", fast_wait, -1)


class TestStop:
    def test_stop_cancels_waiting_loop_promptly(self, failure):
        calls = [0]

        def always_fail(event):
            calls[0] += 1
            raise failure

        # First wait is short so one attempt fails; the second wait is long.
        engine = TransitionEngine("start", lambda attempt: 0.001 if attempt == 1 else 30.0, 10)
        engine.add_transition("start", "end", always_fail)

        call = BackgroundCall(lambda: engine.transit_with_retries("end")).start()
        assert wait_until(lambda: calls[0] == 1 and engine._stop.waiting)

        stopped_at = time.monotonic()
        assert engine.stop() is True
        call.join(timeout=5.0)

        assert not call.alive
        assert call.finished_at - stopped_at < 5.0
        assert isinstance(call.error, TransitionCancelledError)
        assert call.error.last_error is failure
        assert call.error.attempts == 1
        assert engine.current_state == "start"

    def test_stop_before_any_attempt_has_no_last_error(self):
        engine = TransitionEngine("start", lambda attempt: 30.0, 3)
        engine.add_transition("start", "end")

        call = BackgroundCall(lambda: engine.transit_with_retries("end")).start()
        assert wait_until(lambda: engine._stop.waiting)
        assert engine.stop() is True
        call.join()

        assert isinstance(call.error, TransitionCancelledError)
        assert call.error.last_error is None
        assert call.error.attempts == 0
        assert engine.current_state == "start"

    def test_stop_without_waiting_loop_is_dropped(self):
        engine = TransitionEngine("start", fast_wait, 3)
        engine.add_transition("start", "end")

        assert engine.stop() is False
        # A later loop is not affected by the dropped stop.
        engine.transit_with_retries("end")
        assert engine.current_state == "end"

    def test_concurrent_stops_are_safe(self):
        engine = TransitionEngine("start", lambda attempt: 30.0, 3)
        engine.add_transition("start", "end")

        call = BackgroundCall(lambda: engine.transit_with_retries("end")).start()
        assert wait_until(lambda: engine._stop.waiting)

        stoppers = [BackgroundCall(engine.stop).start() for _ in range(4)]
        for stopper in stoppers:
            stopper.join()
        call.join()

        assert all(s.error is None for s in stoppers)
        assert any(s.result is True for s in stoppers)
        assert isinstance(call.error, TransitionCancelledError)

    def test_infinite_backoff_waits_until_stop(self):
        engine = TransitionEngine("start", lambda attempt: float("inf"), 1)
        engine.add_transition("start", "end")

        call = BackgroundCall(lambda: engine.transit_with_retries("end")).start()
        assert wait_until(lambda: engine._stop.waiting)
        assert engine.stop() is True
        call.join()

        assert isinstance(call.error, TransitionCancelledError)
        assert engine.current_state == "start"
