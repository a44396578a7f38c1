# opening_analyzer/containers.py
"""
Defines the Dependency Injection (DI) container for the application.

This module uses the `punq` library to wire the catalogue, the classification
engine and the services around it. The catalogue is loaded once per container
and shared read-only by every component that needs it.
"""
from typing import Optional

import punq

from opening_analyzer.config.settings import Settings
from opening_analyzer.core.candidate_scorer import CandidateScorer
from opening_analyzer.core.catalogue_indexer import OpeningCatalogue
from opening_analyzer.core.pattern_override import DEFAULT_PATTERN_RULES, PatternOverride
from opening_analyzer.core.walkup_classifier import OpeningClassifier
from opening_analyzer.orchestration.analysis_service import OpeningAnalysisService
from opening_analyzer.orchestration.result_dispatcher import ResultDispatcher
from opening_analyzer.output.report_generator import ReportGenerator
from opening_analyzer.services.catalogue_service import CatalogueService
from opening_analyzer.services.pgn_service import PgnService
from opening_analyzer.types import ResultCallback


def get_container(
    app_settings: Settings,
    catalogue: Optional[OpeningCatalogue] = None,
    result_callback: Optional[ResultCallback] = None,
) -> punq.Container:
    """
    Initializes and returns a DI container for one catalogue.

    Args:
        app_settings: The process-wide settings.
        catalogue: A pre-built catalogue. When omitted, the configured catalogue
            file is loaded (or an empty catalogue is used if it is unavailable).
        result_callback: An optional async consumer that receives every result.
    """
    container = punq.Container()

    container.register(Settings, instance=app_settings)
    container.register(CatalogueService)
    container.register(PgnService)
    container.register(ReportGenerator)

    if catalogue is None:
        catalogue = CatalogueService().load_or_empty(
            app_settings.catalogue.path, app_settings.catalogue.format
        )
    container.register(OpeningCatalogue, instance=catalogue)

    container.register(
        CandidateScorer,
        factory=lambda: CandidateScorer(catalogue, app_settings.ranking),
        scope=punq.Scope.singleton,
    )
    container.register(
        PatternOverride,
        factory=lambda: PatternOverride(catalogue, DEFAULT_PATTERN_RULES, app_settings.pattern_override),
        scope=punq.Scope.singleton,
    )
    container.register(
        OpeningClassifier,
        factory=lambda: OpeningClassifier(
            catalogue,
            scorer=container.resolve(CandidateScorer),
            pattern_override=container.resolve(PatternOverride),
            default_options=app_settings.classification,
        ),
        scope=punq.Scope.singleton,
    )

    dispatcher = ResultDispatcher(result_callback, app_settings.dispatch) if result_callback else None
    container.register(
        OpeningAnalysisService,
        factory=lambda: OpeningAnalysisService(
            container.resolve(OpeningClassifier),
            app_settings,
            pgn_service=container.resolve(PgnService),
            dispatcher=dispatcher,
        ),
        scope=punq.Scope.singleton,
    )

    return container
