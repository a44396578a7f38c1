# opening_analyzer/orchestration/result_dispatcher.py
"""
Provides a fire-and-forget adapter for forwarding results downstream.

The classification result is final before delivery starts: the dispatcher only
schedules the caller-supplied async callback as a background task, bounds it
with a timeout, and logs (never raises) when delivery fails. `drain()` lets a
shutting-down process wait for deliveries that are still in flight.
"""

import asyncio
from typing import Optional, Set

import structlog

from opening_analyzer.config.settings import DispatchSettings
from opening_analyzer.types import AnalysisResult, ResultCallback
from opening_analyzer.utils import metrics

logger = structlog.get_logger(__name__)


class ResultDispatcher:
    """Schedules best-effort, timeout-bounded deliveries of analysis results."""

    def __init__(self, callback: ResultCallback, settings: Optional[DispatchSettings] = None):
        """
        Initializes the ResultDispatcher.

        Args:
            callback: An async callable that receives each result.
            settings: Delivery timeout and on/off switch.
        """
        self._callback = callback
        self._settings = settings or DispatchSettings()
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def dispatch(self, result: AnalysisResult) -> Optional[asyncio.Task]:
        """
        Schedules delivery of a result and returns immediately.

        Must be called from a running event loop.

        Returns:
            The background task, or None when dispatching is disabled.
        """
        if not self._settings.enabled:
            return None
        task = asyncio.get_running_loop().create_task(self._deliver(result))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, result: AnalysisResult) -> None:
        try:
            await asyncio.wait_for(self._callback(result), timeout=self._settings.timeout_s)
            metrics.RESULT_DISPATCH_TOTAL.labels(outcome="delivered").inc()
        except asyncio.TimeoutError:
            metrics.RESULT_DISPATCH_TOTAL.labels(outcome="timeout").inc()
            logger.warning(
                "Result delivery timed out.",
                timeout_s=self._settings.timeout_s, status=result.status.value
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Delivery is best-effort; the caller already holds the result.
            metrics.RESULT_DISPATCH_TOTAL.labels(outcome="failed").inc()
            logger.warning("Result delivery failed.", error=str(e), status=result.status.value)

    async def drain(self) -> None:
        """Waits for every in-flight delivery to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
