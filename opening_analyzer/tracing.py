# opening_analyzer/tracing.py

"""
tracing
~~~~~~~

This module provides components for request traceability and context-aware
logging around classification calls.
"""

import functools
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import structlog

logger = structlog.get_logger(__name__)

@dataclass(frozen=True, slots=True)
class CorrelationID:
    """A unique identifier for a single classification request."""
    run_id: str
    request_id: str

    @classmethod
    def new(cls, run_id: str) -> "CorrelationID":
        return cls(run_id=run_id, request_id=uuid.uuid4().hex[:8])

    @property
    def short_id(self) -> str:
        """A short, human-readable version of the full ID."""
        return f"{self.run_id}:{self.request_id}"


@contextmanager
def bound_request(cid: CorrelationID) -> Iterator[None]:
    """Binds the correlation id to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(correlation_id=cid.short_id):
        yield


def trace_operation(func: Callable) -> Callable:
    """A decorator that logs entry to and exit from a synchronous operation."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        operation = func.__qualname__
        logger.debug("Entering operation.", operation=operation)
        started = time.perf_counter()
        result = func(*args, **kwargs)
        logger.debug(
            "Exiting operation.",
            operation=operation, duration_ms=round((time.perf_counter() - started) * 1000, 2)
        )
        return result
    return wrapper
