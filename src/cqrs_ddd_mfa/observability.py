"""MFA metrics for Prometheus.

Usage:
    ```python
    from cqrs_ddd_mfa.observability import MfaMetrics

    with MfaMetrics.timed("verify"):
        result = await provider.verify(user_id, code)
    MfaMetrics.record("verify", "success" if result.is_success else "invalid_code")
    ```
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

if TYPE_CHECKING:
    from collections.abc import Generator

_logger = logging.getLogger(__name__)


class _MfaMetricsRegistry:
    """Registry for MFA Prometheus metrics.

    Lazily creates the collectors on first use so that importing the
    package never registers anything.
    """

    def __init__(self) -> None:
        self._histogram: Histogram | None = None
        self._counter: Counter | None = None

    def _ensure_initialized(self) -> None:
        if self._counter is not None:
            return
        self._histogram = Histogram(
            "mfa_operation_duration_seconds",
            "MFA operation duration",
            ["operation"],
        )
        self._counter = Counter(
            "mfa_operations_total",
            "MFA operation count",
            ["operation", "result"],
        )
        _logger.debug("MFA metrics registered")

    @property
    def histogram(self) -> Histogram:
        self._ensure_initialized()
        assert self._histogram is not None
        return self._histogram

    @property
    def counter(self) -> Counter:
        self._ensure_initialized()
        assert self._counter is not None
        return self._counter


# Global registry instance
_registry = _MfaMetricsRegistry()


class MfaMetrics:
    """Helpers for recording MFA operations."""

    @staticmethod
    @contextmanager
    def timed(operation: str) -> Generator[None, None, None]:
        """Context manager observing the duration of an operation."""
        start = time.perf_counter()
        try:
            yield
        finally:
            _registry.histogram.labels(operation=operation).observe(
                time.perf_counter() - start
            )

    @staticmethod
    def record(operation: str, result: str) -> None:
        """Count one operation outcome.

        Args:
            operation: Provider operation, e.g. ``verify``.
            result: ``success`` or the lowercase error code.
        """
        _registry.counter.labels(operation=operation, result=result).inc()


__all__: list[str] = ["MfaMetrics"]
