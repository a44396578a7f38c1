# opening_analyzer/orchestration/analysis_service.py
"""
The collaborator-facing facade over the classification engine.

`OpeningAnalysisService` is what outer layers (the CLI, a bot, a web handler)
talk to. It adds the ambient concerns the pure classifier does not carry:
request correlation ids, metrics, bounded concurrency for batch runs, PGN-file
input and the optional downstream dispatch of every finished result.
"""

import asyncio
import uuid
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import structlog

from opening_analyzer.config.settings import Settings
from opening_analyzer.core.walkup_classifier import OpeningClassifier, OptionsLike
from opening_analyzer.orchestration.result_dispatcher import ResultDispatcher
from opening_analyzer.services.pgn_service import GameRecord, PgnService
from opening_analyzer.tracing import CorrelationID, bound_request, trace_operation
from opening_analyzer.types import AnalysisResult
from opening_analyzer.utils import metrics

logger = structlog.get_logger(__name__)


class OpeningAnalysisService:
    """Runs single, batch and PGN-file classifications against one catalogue."""

    def __init__(
        self,
        classifier: OpeningClassifier,
        settings: Settings,
        pgn_service: Optional[PgnService] = None,
        dispatcher: Optional[ResultDispatcher] = None,
    ):
        self._classifier = classifier
        self._settings = settings
        self._pgn_service = pgn_service or PgnService()
        self._dispatcher = dispatcher
        self._run_id = uuid.uuid4().hex[:6]

    @property
    def classifier(self) -> OpeningClassifier:
        return self._classifier

    @trace_operation
    def analyze(
        self,
        move_text: str,
        ply_limit: Optional[int] = None,
        options: OptionsLike = None,
    ) -> AnalysisResult:
        """
        Classifies one game synchronously.

        `ply_limit` falls back to the configured default when omitted.

        Raises:
            InvalidRequestError: If the call contract is violated.
        """
        if ply_limit is None:
            ply_limit = self._settings.default_ply_limit

        with bound_request(CorrelationID.new(self._run_id)):
            with metrics.CLASSIFICATION_DURATION_SECONDS.time():
                result = self._classifier.classify(move_text, ply_limit=ply_limit, options=options)
            metrics.CLASSIFICATIONS_TOTAL.labels(status=result.status.value).inc()
            logger.info(
                "Classification complete.",
                status=result.status.value, opening=result.name, eco=result.eco
            )
        return result

    async def analyze_async(
        self,
        move_text: str,
        ply_limit: Optional[int] = None,
        options: OptionsLike = None,
    ) -> AnalysisResult:
        """
        Classifies one game on a worker thread and dispatches the result.

        The result is returned as soon as classification finishes; delivery to
        the downstream consumer continues in the background.
        """
        result = await asyncio.to_thread(self.analyze, move_text, ply_limit, options)
        if self._dispatcher is not None:
            self._dispatcher.dispatch(result)
        return result

    async def analyze_batch(
        self,
        move_texts: Sequence[str],
        ply_limit: Optional[int] = None,
        options: OptionsLike = None,
    ) -> List[AnalysisResult]:
        """
        Classifies many games concurrently, at most `concurrency` at a time.

        Results are returned in input order.
        """
        semaphore = asyncio.Semaphore(self._settings.concurrency)

        async def _bounded(text: str) -> AnalysisResult:
            async with semaphore:
                return await self.analyze_async(text, ply_limit, options)

        results = await asyncio.gather(*(_bounded(text) for text in move_texts))
        logger.info("Batch classification complete.", games=len(results))
        return list(results)

    async def analyze_pgn_file(
        self,
        pgn_path: Path,
        ply_limit: Optional[int] = None,
        options: OptionsLike = None,
    ) -> List[Tuple[GameRecord, AnalysisResult]]:
        """
        Classifies every game in a PGN file.

        Raises:
            PgnServiceError: If the file cannot be read.
        """
        records: List[GameRecord] = []
        async for record in self._pgn_service.stream_games(pgn_path):
            records.append(record)

        logger.info("Classifying PGN file.", path=str(pgn_path), games=len(records))
        results = await self.analyze_batch([r.move_text for r in records], ply_limit, options)
        return list(zip(records, results))

    async def shutdown(self) -> None:
        """Waits for outstanding result deliveries."""
        if self._dispatcher is not None:
            await self._dispatcher.drain()
