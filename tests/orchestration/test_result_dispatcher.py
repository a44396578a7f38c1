# tests/orchestration/test_result_dispatcher.py
import asyncio
from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY

from opening_analyzer.config.settings import DispatchSettings
from opening_analyzer.orchestration.result_dispatcher import ResultDispatcher
from opening_analyzer.types import AnalysisResult, AnalysisStatus


def _result():
    return AnalysisResult(status=AnalysisStatus.NO_MATCH, name=None, eco=None, path=[], progression=[])


def _dispatch_count(outcome):
    return REGISTRY.get_sample_value(
        "opening_analyzer_result_dispatch_total", {"outcome": outcome}
    ) or 0.0


@pytest.mark.asyncio
async def test_dispatch_delivers_in_background():
    callback = AsyncMock()
    dispatcher = ResultDispatcher(callback, DispatchSettings())
    result = _result()
    before = _dispatch_count("delivered")

    task = dispatcher.dispatch(result)
    assert task is not None
    await dispatcher.drain()

    callback.assert_awaited_once_with(result)
    assert _dispatch_count("delivered") == before + 1
    assert dispatcher.pending_count == 0


@pytest.mark.asyncio
async def test_slow_delivery_times_out_without_raising():
    async def slow(result):
        await asyncio.sleep(1)

    dispatcher = ResultDispatcher(slow, DispatchSettings(timeout_s=0.01))
    before = _dispatch_count("timeout")

    dispatcher.dispatch(_result())
    await dispatcher.drain()

    assert _dispatch_count("timeout") == before + 1


@pytest.mark.asyncio
async def test_failed_delivery_is_logged_not_raised():
    callback = AsyncMock(side_effect=ConnectionError("downstream unavailable"))
    dispatcher = ResultDispatcher(callback, DispatchSettings())
    before = _dispatch_count("failed")

    task = dispatcher.dispatch(_result())
    await dispatcher.drain()

    assert task.exception() is None
    assert _dispatch_count("failed") == before + 1


@pytest.mark.asyncio
async def test_disabled_dispatcher_does_nothing():
    callback = AsyncMock()
    dispatcher = ResultDispatcher(callback, DispatchSettings(enabled=False))

    assert dispatcher.dispatch(_result()) is None
    await dispatcher.drain()
    callback.assert_not_awaited()
