# opening_analyzer/core/walkup_classifier.py
"""
The top-level opening classification engine.

The `OpeningClassifier` replays a game, scores every replayed ply once with the
`CandidateScorer`, and derives three things from those scores:

1. A per-ply progression report (with sequence and first-move fallbacks).
2. The anchor: the deepest ply that matches the catalogue by position.
3. The walk-up path: the names matched from the anchor back to ply 1, split
   into fragments and merged most-specific-first.

When no ply matches by position, the whole-game sequence fallback and the
pattern override take over. The override also refines a shallow generic anchor
when it detects a more specific system. Every outcome, including "no moves" and "no match",
is an ordinary `AnalysisResult`.
"""
from collections import Counter
from dataclasses import replace
from typing import (Any, List, Mapping, Optional, Sequence, Tuple, Union,
                    TYPE_CHECKING)

import structlog
from pydantic import ValidationError

from opening_analyzer.config.settings import ClassificationOptions
from opening_analyzer.core.candidate_scorer import CandidateScorer
from opening_analyzer.core.move_replayer import build_sequence_text, replay_game
from opening_analyzer.core.path_builder import (POPULAR_FIRST_MOVES,
                                                build_opening_path,
                                                build_walk_up_path,
                                                first_move_label)
from opening_analyzer.core.sequence_fallback import (best_entry_extending,
                                                     longest_entry_within)
from opening_analyzer.exceptions import InvalidRequestError
from opening_analyzer.types import (AnalysisResult, AnalysisStatus, Diagnostics,
                                    LevelDetail, MatchCandidate, MatchSource,
                                    MoveToken, PlyClassification, PlyRecord)

if TYPE_CHECKING:
    from opening_analyzer.core.catalogue_indexer import OpeningCatalogue
    from opening_analyzer.core.pattern_override import PatternOverride

logger = structlog.get_logger(__name__)

OptionsLike = Union[ClassificationOptions, Mapping[str, Any], None]


def _played_indices(
    entry_tokens: Sequence[MoveToken], game_tokens: Sequence[MoveToken]
) -> Tuple[Optional[int], ...]:
    """Maps each entry token to the first unused index where the game played it."""
    used = set()
    indices: List[Optional[int]] = []
    for token in entry_tokens:
        found = None
        for index, played in enumerate(game_tokens):
            if played == token and index not in used:
                found = index
                used.add(index)
                break
        indices.append(found)
    return tuple(indices)


class OpeningClassifier:
    """
    Classifies games against one injected, read-only catalogue.

    The classifier holds no per-call state, so a single instance can serve any
    number of concurrent calls.
    """

    def __init__(
        self,
        catalogue: "OpeningCatalogue",
        scorer: Optional[CandidateScorer] = None,
        pattern_override: Optional["PatternOverride"] = None,
        default_options: Optional[ClassificationOptions] = None,
        first_move_table: Mapping[str, str] = POPULAR_FIRST_MOVES,
    ):
        self._catalogue = catalogue
        self._scorer = scorer or CandidateScorer(catalogue)
        self._pattern_override = pattern_override
        self._default_options = default_options or ClassificationOptions()
        self._first_move_table = first_move_table

    @property
    def catalogue(self) -> "OpeningCatalogue":
        return self._catalogue

    def resolve_options(self, options: OptionsLike) -> ClassificationOptions:
        """
        Merges per-call options over the defaults.

        Raises:
            InvalidRequestError: If the options do not validate.
        """
        if options is None:
            return self._default_options
        if isinstance(options, ClassificationOptions):
            return options
        try:
            return ClassificationOptions.model_validate(
                {**self._default_options.model_dump(), **dict(options)}
            )
        except (ValidationError, TypeError, ValueError) as e:
            raise InvalidRequestError(f"Invalid classification options: {e}") from e

    def classify(
        self,
        move_text: str,
        ply_limit: Optional[int] = None,
        options: OptionsLike = None,
    ) -> AnalysisResult:
        """
        Classifies a game given as move-list text.

        Args:
            move_text: The game's moves, in any notation the replayer accepts.
            ply_limit: The maximum number of plies replayed. None replays everything.
            options: A `ClassificationOptions` or a mapping of its fields.

        Returns:
            The `AnalysisResult`. Unparseable input yields status `NO_MOVES`; an
            unrecognized game yields `NO_MATCH`.

        Raises:
            InvalidRequestError: If `move_text` is not a string, `ply_limit` is
                negative, or the options are invalid.
        """
        if not isinstance(move_text, str):
            raise InvalidRequestError("A move-list text is required.")
        if ply_limit is not None and ply_limit < 0:
            raise InvalidRequestError("ply_limit must not be negative.")
        opts = self.resolve_options(options)

        records = replay_game(move_text, ply_limit)
        if not records:
            logger.debug("No moves parsed from input.")
            return AnalysisResult(
                status=AnalysisStatus.NO_MOVES, name=None, eco=None, path=[], progression=[]
            )

        game_tokens = [record.token for record in records]
        game_counter = Counter(game_tokens)
        first_token = game_tokens[0]

        # Score every ply once; the report, anchor search and walk-up all reuse it.
        ranked: List[List[MatchCandidate]] = [
            self._scorer.rank_candidates(record.canonical_key, record.played_prefix, game_counter, opts)
            for record in records
        ]
        best: List[Optional[MatchCandidate]] = [cands[0] if cands else None for cands in ranked]

        progression = [
            self._classify_ply(record, best[index], first_token, opts)
            for index, record in enumerate(records[:opts.report_limit])
        ]

        anchor_index: Optional[int] = None
        for index in range(len(records) - 1, -1, -1):
            if best[index] is not None:
                anchor_index = index
                break

        if anchor_index is not None:
            result = self._walk_up(records, best, anchor_index, first_token, progression)
            if not opts.require_exact_position_match:
                result = self._refine_shallow_anchor(records, result)
        else:
            result = self._fallback(records, first_token, progression, opts)

        if opts.include_diagnostics:
            result = self._with_diagnostics(result, records, best, ranked, anchor_index)

        logger.debug(
            "Game classified.",
            status=result.status.value, opening=result.name, plies=len(records), anchor_ply=result.anchor_ply
        )
        return result

    def _classify_ply(
        self,
        record: PlyRecord,
        best: Optional[MatchCandidate],
        first_token: MoveToken,
        opts: ClassificationOptions,
    ) -> PlyClassification:
        """Builds one progression row, falling back from position to sequence to first move."""
        sequence_text = build_sequence_text(record.played_prefix)

        if best is not None:
            return PlyClassification(
                ply=record.ply, sequence_text=sequence_text, name=best.raw_name,
                eco=best.entry.eco, path=self._path(best.raw_name, first_token),
                canonical_key=record.canonical_key, source=MatchSource.POSITION, entry=best.entry,
            )

        if not opts.require_exact_position_match:
            entry = best_entry_extending(self._catalogue, record.played_prefix)
            if entry is not None:
                return PlyClassification(
                    ply=record.ply, sequence_text=sequence_text, name=entry.name,
                    eco=entry.eco, path=self._path(entry.name, first_token),
                    canonical_key=record.canonical_key, source=MatchSource.SEQUENCE, entry=entry,
                )

        label = first_move_label(first_token, self._first_move_table) if record.ply == 1 else None
        return PlyClassification(
            ply=record.ply, sequence_text=sequence_text, name=label, eco=None,
            path=[label] if label else [], canonical_key=record.canonical_key,
            source=MatchSource.FIRST_MOVE if label else None,
        )

    def _walk_up(
        self,
        records: Sequence[PlyRecord],
        best: Sequence[Optional[MatchCandidate]],
        anchor_index: int,
        first_token: MoveToken,
        progression: List[PlyClassification],
    ) -> AnalysisResult:
        """Collects matched names from the anchor back to ply 1 and merges their paths."""
        names: List[str] = []
        for index in range(anchor_index, -1, -1):
            candidate = best[index]
            if candidate is not None and candidate.raw_name not in names:
                names.append(candidate.raw_name)

        anchor = best[anchor_index]
        return AnalysisResult(
            status=AnalysisStatus.MATCHED,
            name=anchor.raw_name,
            eco=anchor.entry.eco,
            path=build_walk_up_path(names, first_token, self._first_move_table),
            progression=progression,
            plies_replayed=len(records),
            anchor_ply=records[anchor_index].ply,
            source=MatchSource.POSITION,
            entry=anchor.entry,
        )

    def _refine_shallow_anchor(self, records: Sequence[PlyRecord], result: AnalysisResult) -> AnalysisResult:
        """Lets a detected pattern replace a generic anchored name; the progression is kept."""
        if self._pattern_override is None:
            return result
        outcome = self._pattern_override.refine(
            records, result.name, result.anchor_ply, result.path, self._first_move_table
        )
        if outcome is None:
            return result
        return replace(
            result, status=AnalysisStatus.PATTERN_OVERRIDE, name=outcome.name,
            eco=outcome.entry.eco if outcome.entry else None, path=outcome.path,
            anchor_ply=outcome.ply, source=MatchSource.PATTERN, entry=outcome.entry,
        )

    def _fallback(
        self,
        records: Sequence[PlyRecord],
        first_token: MoveToken,
        progression: List[PlyClassification],
        opts: ClassificationOptions,
    ) -> AnalysisResult:
        """Whole-game classification when no ply matched by position."""
        base = dict(progression=progression, plies_replayed=len(records))

        if opts.require_exact_position_match:
            return AnalysisResult(status=AnalysisStatus.NO_MATCH, name=None, eco=None, path=[], **base)

        entry = longest_entry_within(self._catalogue, [r.token for r in records])
        fallback_path = self._path(entry.name, first_token) if entry else []

        outcome = self._pattern_override.apply(records, fallback_path, self._first_move_table) if self._pattern_override else None
        if outcome is not None:
            return AnalysisResult(
                status=AnalysisStatus.PATTERN_OVERRIDE, name=outcome.name,
                eco=outcome.entry.eco if outcome.entry else None, path=outcome.path,
                anchor_ply=outcome.ply, source=MatchSource.PATTERN, entry=outcome.entry, **base,
            )

        if entry is not None:
            return AnalysisResult(
                status=AnalysisStatus.SEQUENCE_FALLBACK, name=entry.name, eco=entry.eco,
                path=fallback_path, anchor_ply=len(entry.tokens), source=MatchSource.SEQUENCE,
                entry=entry, **base,
            )

        label = first_move_label(first_token, self._first_move_table)
        if len(records) == 1 and label:
            return AnalysisResult(
                status=AnalysisStatus.FIRST_MOVE_FALLBACK, name=label, eco=None,
                path=[label], source=MatchSource.FIRST_MOVE, **base,
            )

        return AnalysisResult(status=AnalysisStatus.NO_MATCH, name=None, eco=None, path=[], **base)

    def _with_diagnostics(
        self,
        result: AnalysisResult,
        records: Sequence[PlyRecord],
        best: Sequence[Optional[MatchCandidate]],
        ranked: Sequence[Sequence[MatchCandidate]],
        anchor_index: Optional[int],
    ) -> AnalysisResult:
        """Returns a copy of the result with per-level walk-up detail attached."""
        game_tokens = [record.token for record in records]
        levels: List[LevelDetail] = []
        seen = set()

        if anchor_index is not None:
            for index in range(anchor_index, -1, -1):
                candidate = best[index]
                if candidate is None or candidate.raw_name in seen:
                    continue
                seen.add(candidate.raw_name)
                indices = _played_indices(candidate.entry_tokens, game_tokens)
                levels.append(
                    LevelDetail(
                        ply=records[index].ply,
                        name=candidate.raw_name,
                        eco=candidate.entry.eco,
                        entry_tokens=candidate.entry_tokens,
                        played_indices=indices,
                        is_transposition=any(idx != pos for pos, idx in enumerate(indices)),
                        set_match_fraction=candidate.set_match_fraction,
                        ordering_key=candidate.ordering_key,
                    )
                )

        rule = self._pattern_override.detect(records) if self._pattern_override else None
        diagnostics = Diagnostics(
            anchor_ply=records[anchor_index].ply if anchor_index is not None else None,
            levels=levels,
            candidate_counts={record.ply: len(cands) for record, cands in zip(records, ranked) if cands},
            pattern_label=rule.label if rule else None,
        )
        return replace(result, diagnostics=diagnostics)

    def _path(self, raw_name: str, first_token: MoveToken) -> List[str]:
        return build_opening_path(raw_name, first_token, self._first_move_table)
