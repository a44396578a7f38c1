# opening_analyzer/core/pattern_override.py
"""
A narrow, rule-based override layer for well-known opening systems.

Some systems are recognized by a handful of characteristic White moves rather
than by a fixed move order, so the catalogue lookup can miss or under-specify
them. Each `PatternRule` pairs a system label with a detector function; the
rules live in a plain tuple so tests and callers can swap the table without
touching the scoring engine. The override refines the whole-game result, either
the sequence fallback or a shallow generic anchor, never the per-ply progression
report.
"""
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple, TYPE_CHECKING

import structlog

from opening_analyzer.config.settings import PatternOverrideSettings
from opening_analyzer.core.candidate_scorer import specificity_score
from opening_analyzer.core.path_builder import (POPULAR_FIRST_MOVES,
                                                build_opening_path, family_name,
                                                first_move_label, merge_paths)
from opening_analyzer.types import OpeningEntry, PatternDetector, PlyRecord

if TYPE_CHECKING:
    from opening_analyzer.core.catalogue_indexer import OpeningCatalogue

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PatternRule:
    label: str
    detector: PatternDetector


@dataclass(frozen=True)
class OverrideOutcome:
    """What the override decided: a catalogue-backed match or a synthesized label."""
    label: str; name: str; path: List[str]
    entry: Optional[OpeningEntry] = None; ply: Optional[int] = None


def _white_moves(records: Sequence[PlyRecord], window_plies: int) -> List[str]:
    """White's tokens within the window, with check marks removed."""
    return [r.token.rstrip("+#") for r in records[:window_plies] if r.ply % 2 == 1]


def detect_london_system(records: Sequence[PlyRecord], window_plies: int) -> bool:
    """
    Detects the London System from White's first moves.

    The diagnostic move is the dark-squared bishop to f4. It must not follow an
    early c4 (which steers into Queen's Gambit structures), d4 must be played
    before it or on the very next move, and the e3/c3 support must appear
    within the window.
    """
    white = _white_moves(records, window_plies)
    if "Bf4" not in white:
        return False
    bishop_at = white.index("Bf4")
    if "c4" in white[:bishop_at]:
        return False
    if "d4" not in white[:bishop_at + 2]:
        return False
    return "e3" in white or "c3" in white


DEFAULT_PATTERN_RULES: Tuple[PatternRule, ...] = (
    PatternRule(label="London System", detector=detect_london_system),
)


class PatternOverride:
    """Applies the first matching pattern rule to a whole-game result."""

    def __init__(
        self,
        catalogue: "OpeningCatalogue",
        rules: Sequence[PatternRule] = DEFAULT_PATTERN_RULES,
        settings: Optional[PatternOverrideSettings] = None,
    ):
        self._catalogue = catalogue
        self._rules = tuple(rules)
        self._settings = settings or PatternOverrideSettings()

    def detect(self, records: Sequence[PlyRecord]) -> Optional[PatternRule]:
        """Returns the first rule whose detector fires, or None."""
        if not self._settings.enabled:
            return None
        for rule in self._rules:
            if rule.detector(records, self._settings.window_plies):
                return rule
        return None

    def find_catalogue_match(
        self, rule: PatternRule, records: Sequence[PlyRecord]
    ) -> Optional[Tuple[OpeningEntry, int]]:
        """
        Finds a catalogue entry of the detected system that the game touched.

        An entry qualifies when its family name mentions the rule's label and it
        shares at least one canonical key with the game. The earliest shared
        played ply wins, then the deepest shared ply, then name specificity.

        Returns:
            The entry and the earliest played ply it shares, or None.
        """
        label = rule.label.lower()
        played_keys = {}
        for record in records:
            played_keys.setdefault(record.canonical_key, record.ply)

        best: Optional[Tuple[Tuple[int, int, int], OpeningEntry, int]] = None
        for entry in self._catalogue:
            if label not in family_name(entry.name).lower():
                continue
            entry_keys = set(entry.key_plies)
            if entry.declared_key is not None:
                entry_keys.add(entry.declared_key)
            shared = [played_keys[key] for key in entry_keys if key in played_keys]
            if not shared:
                continue
            earliest, deepest = min(shared), max(shared)
            rank = (-earliest, deepest, specificity_score(entry.name))
            if best is None or rank > best[0]:
                best = (rank, entry, earliest)

        if best is None:
            return None
        return best[1], best[2]

    def apply(
        self,
        records: Sequence[PlyRecord],
        fallback_path: Sequence[str],
        first_move_table: Mapping[str, str] = POPULAR_FIRST_MOVES,
    ) -> Optional[OverrideOutcome]:
        """
        Runs detection and builds the override for a whole-game fallback.

        Args:
            records: The replayed game.
            fallback_path: The path the sequence fallback produced, possibly empty.
            first_move_table: The first-move → family label table of the caller.

        Returns:
            An `OverrideOutcome`, or None when no pattern is detected.
        """
        rule = self.detect(records)
        if rule is None:
            return None
        return self._build_outcome(rule, records, fallback_path, first_move_table)

    def refine(
        self,
        records: Sequence[PlyRecord],
        anchor_name: str,
        anchor_ply: int,
        walk_up_path: Sequence[str],
        first_move_table: Mapping[str, str] = POPULAR_FIRST_MOVES,
    ) -> Optional[OverrideOutcome]:
        """
        Augments a position-anchored result that stops short of a detected system.

        A generic catalogue entry such as `1. d4 d5` anchors most London games
        long before the system's diagnostic moves. The anchored result counts
        as under-specified when its anchor lies inside the detection window and
        its name does not mention the detected system.
        """
        if anchor_ply > self._settings.window_plies:
            return None
        rule = self.detect(records)
        if rule is None or rule.label.lower() in anchor_name.lower():
            return None
        logger.debug("Pattern refines shallow anchor.", pattern=rule.label, opening=anchor_name, ply=anchor_ply)
        return self._build_outcome(rule, records, walk_up_path, first_move_table)

    def _build_outcome(
        self,
        rule: PatternRule,
        records: Sequence[PlyRecord],
        base_path: Sequence[str],
        first_move_table: Mapping[str, str],
    ) -> OverrideOutcome:
        first_token = records[0].token if records else None
        label = first_move_label(first_token, first_move_table)
        tail = [label] if label else []

        match = self.find_catalogue_match(rule, records)
        if match is not None:
            entry, ply = match
            logger.debug("Pattern override matched catalogue entry.", pattern=rule.label, opening=entry.name, ply=ply)
            return OverrideOutcome(
                label=rule.label, name=entry.name,
                path=merge_paths([build_opening_path(entry.name, None), base_path, tail]),
                entry=entry, ply=ply,
            )

        logger.debug("Pattern override synthesized label.", pattern=rule.label)
        return OverrideOutcome(
            label=rule.label, name=rule.label, path=merge_paths([[rule.label], base_path, tail])
        )
