# opening_analyzer/config/settings.py
"""
Configuration settings for the Opening Analyzer, powered by Pydantic.

This module centralizes all tunable parameters, default values, and configuration
schemas. Per-call classification options are plain Pydantic models so that the
collaborators calling into the engine can build them from request payloads or
command-line flags, while process-wide settings are loaded from environment
variables via `pydantic-settings`.
"""
import math
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# The seven ranking criteria understood by the candidate scorer.
RANKING_CRITERIA: Tuple[str, ...] = (
    "same_ply", "reaches_key", "common_prefix", "fully_matched",
    "neg_length", "specificity", "set_match",
)

# --- Nested Models for Configuration Schemas ---

class ClassificationOptions(BaseModel):
    """
    Per-call options accepted by the classification entry point.

    Unknown fields are rejected so that a typo in a caller's payload surfaces
    as an error instead of silently falling back to a default.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    require_exact_position_match: bool = Field(False, description="Report 'no match' instead of falling back to move-sequence matching when no position matches.")
    orderless_matching: bool = Field(False, description="Allow candidates whose moves all occur somewhere in the game, regardless of order.")
    orderless_threshold: float = Field(1.0, description="Fraction of an entry's moves that must occur in the game for a set match. Clamped to [0, 1].")
    prefer_set_matches: bool = Field(False, description="Rank set-matched candidates ahead of all others.")
    report_limit: int = Field(20, ge=0, description="Number of plies covered by the per-ply progression report.")
    include_diagnostics: bool = Field(False, description="Attach per-level diagnostic detail to the result.")

    @field_validator("orderless_threshold", mode="before")
    @classmethod
    def clamp_threshold(cls, value: float) -> float:
        """Clamps the orderless threshold into the closed unit interval."""
        value = float(value)
        if math.isnan(value):
            raise ValueError("orderless_threshold must be a number, not NaN.")
        return min(1.0, max(0.0, value))


class RankingSettings(BaseModel):
    """
    Defines the lexicographic order in which candidate criteria are compared.

    Every criterion is compared descending; the first differing criterion decides.
    """
    default_order: Tuple[str, ...] = Field(
        RANKING_CRITERIA,
        description="Criterion order used unless set matches are preferred."
    )
    prefer_set_order: Tuple[str, ...] = Field(
        ("set_match", "specificity", "same_ply", "reaches_key",
         "common_prefix", "fully_matched", "neg_length"),
        description="Criterion order used when `prefer_set_matches` is requested."
    )

    @field_validator("default_order", "prefer_set_order")
    @classmethod
    def validate_is_permutation(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        """Ensures an order names every criterion exactly once."""
        if sorted(value) != sorted(RANKING_CRITERIA):
            raise ValueError(
                f"Configuration error: ranking order must be a permutation of {RANKING_CRITERIA}."
            )
        return tuple(value)


class PatternOverrideSettings(BaseModel):
    """Thresholds for the move-pattern override layer."""
    enabled: bool = Field(True, description="Whether detected move patterns may override the sequence fallback.")
    window_plies: int = Field(16, ge=1, description="Number of opening plies inspected by pattern detectors.")


class CatalogueSettings(BaseModel):
    """Where the opening catalogue is read from at startup."""
    path: Optional[str] = Field(None, description="Path to the catalogue document. No path means an empty catalogue.")
    format: str = Field("auto", description="One of 'auto', 'json', 'tsv', 'csv' or 'pgn'.")

    @field_validator("format")
    @classmethod
    def validate_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"auto", "json", "tsv", "csv", "pgn"}:
            raise ValueError(f"Configuration error: unsupported catalogue format '{value}'.")
        return value


class DispatchSettings(BaseModel):
    """Configuration for forwarding results to a downstream consumer."""
    enabled: bool = True
    timeout_s: float = Field(5.0, gt=0, description="Upper bound on a single delivery attempt.")


# --- Main Application Settings Class ---

class Settings(BaseSettings):
    """
    Main configuration class for the application.

    It loads settings from environment variables with the prefix 'OPENING_ANALYZER_'.
    Nested models can be configured using a double underscore delimiter, e.g.,
    `OPENING_ANALYZER_CATALOGUE__PATH=data/openings.tsv`.
    """
    model_config = SettingsConfigDict(env_prefix='OPENING_ANALYZER_', env_nested_delimiter='__')

    classification: ClassificationOptions = Field(default_factory=ClassificationOptions)
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    pattern_override: PatternOverrideSettings = Field(default_factory=PatternOverrideSettings)
    catalogue: CatalogueSettings = Field(default_factory=CatalogueSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    default_ply_limit: Optional[int] = Field(None, ge=0, description="Maximum plies replayed per game. None replays the whole game.")
    concurrency: int = Field(4, ge=1, description="Maximum number of games classified at once in batch runs.")
    default_log_level: str = "INFO"

# A singleton instance of the settings, used by entry points to seed the container.
settings = Settings()
