"""Retry policy configuration for ``transit_with_retries``."""

from __future__ import annotations

from functools import cached_property

from rsm.core.state.retry import RetryWait, exponential_backoff

from ..base import BaseDomainConfig


class RetryConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "retry"

    @cached_property
    def max_retries(self) -> int:
        return int(self.section.get("max_retries", 3))

    @cached_property
    def initial_delay(self) -> float:
        return float(self.section.get("initial_delay", 1.0))

    @cached_property
    def backoff_factor(self) -> float:
        return float(self.section.get("backoff_factor", 2.0))

    @cached_property
    def max_delay(self) -> float:
        return float(self.section.get("max_delay", 60.0))

    def backoff(self) -> RetryWait:
        """Exponential ``attempt -> seconds`` function built from this section."""
        return exponential_backoff(
            initial_delay=self.initial_delay,
            backoff_factor=self.backoff_factor,
            max_delay=self.max_delay,
        )


__all__ = ["RetryConfig"]
