# opening_analyzer/core/candidate_scorer.py
"""
Contains the single scoring primitive of the classification engine.

Given a played position (its canonical key, the moves played so far and the
moves of the whole game), the `CandidateScorer` picks the best catalogue entry
among those indexed under that key. Candidates whose own move order disagrees
with the played order are rejected, so a transposition is never reported as a
move-order match unless orderless matching is switched on. Survivors are ranked
lexicographically on a configurable tuple of criteria.
"""
from collections import Counter
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

from opening_analyzer.config.settings import RankingSettings
from opening_analyzer.types import (CanonicalKey, IndexedEntry, MatchCandidate,
                                    MoveToken)

if TYPE_CHECKING:
    from opening_analyzer.config.settings import ClassificationOptions
    from opening_analyzer.core.catalogue_indexer import OpeningCatalogue


def specificity_score(raw_name: str) -> int:
    """
    Scores how specific an opening name is.

    Hierarchy separators dominate (a colon outweighs any realistic number of
    commas), and longer names win remaining ties.
    """
    return 50 * raw_name.count(":") + 5 * raw_name.count(",") + len(raw_name)


def common_prefix_length(left: Sequence[MoveToken], right: Sequence[MoveToken]) -> int:
    """Returns the number of leading tokens the two sequences share."""
    length = 0
    for a, b in zip(left, right):
        if a != b:
            break
        length += 1
    return length


def set_match_fraction(entry_tokens: Sequence[MoveToken], game_tokens: Counter) -> float:
    """
    Returns the fraction of an entry's tokens that occur anywhere in the game.

    Occurrences are counted as a multiset: an entry that plays `Nf3` twice
    needs two `Nf3` moves in the game.
    """
    if not entry_tokens:
        return 0.0
    remaining = Counter(game_tokens)
    hits = 0
    for token in entry_tokens:
        if remaining[token] > 0:
            remaining[token] -= 1
            hits += 1
    return hits / len(entry_tokens)


class CandidateScorer:
    """
    A stateless scorer bound to one read-only catalogue.

    The criterion order is taken from `RankingSettings`; the scorer switches to
    the prefer-set order per call when the options ask for it.
    """

    def __init__(self, catalogue: "OpeningCatalogue", ranking: Optional[RankingSettings] = None):
        self._catalogue = catalogue
        self._ranking = ranking or RankingSettings()

    @property
    def catalogue(self) -> "OpeningCatalogue":
        return self._catalogue

    def rank_candidates(
        self,
        key: CanonicalKey,
        played_prefix: Sequence[MoveToken],
        game_tokens: Counter,
        options: "ClassificationOptions",
    ) -> List[MatchCandidate]:
        """
        Scores every entry indexed at a key and returns the survivors, best first.

        Args:
            key: The canonical key of the played position.
            played_prefix: The played tokens from ply 1 through this position.
            game_tokens: A multiset of every token played in the whole game.
            options: The per-call classification options.

        Returns:
            The ranked candidates. Empty when nothing is indexed at the key or
            every candidate was disqualified.
        """
        pairs = self._catalogue.candidates_at(key)
        if not pairs:
            return []

        order = (
            self._ranking.prefer_set_order if options.prefer_set_matches
            else self._ranking.default_order
        )
        use_set_match = options.orderless_matching or options.prefer_set_matches

        candidates: List[MatchCandidate] = []
        for pair in pairs:
            candidate = self._score(pair, key, played_prefix, game_tokens, options, order, use_set_match)
            if candidate is not None:
                candidates.append(candidate)

        # sorted() is stable, so complete ties keep catalogue order.
        candidates.sort(key=lambda c: c.ordering_key, reverse=True)
        return candidates

    def best_entry_for_key(
        self,
        key: CanonicalKey,
        played_prefix: Sequence[MoveToken],
        game_tokens: Counter,
        options: "ClassificationOptions",
    ) -> Optional[MatchCandidate]:
        """Returns the top-ranked candidate at a key, or None. See `rank_candidates`."""
        ranked = self.rank_candidates(key, played_prefix, game_tokens, options)
        return ranked[0] if ranked else None

    @staticmethod
    def _score(
        pair: IndexedEntry,
        key: CanonicalKey,
        played_prefix: Sequence[MoveToken],
        game_tokens: Counter,
        options: "ClassificationOptions",
        order: Sequence[str],
        use_set_match: bool,
    ) -> Optional[MatchCandidate]:
        entry = pair.entry
        tokens = entry.tokens

        prefix_len = common_prefix_length(tokens, played_prefix)
        in_order = prefix_len == min(len(tokens), len(played_prefix))

        fraction = set_match_fraction(tokens, game_tokens) if use_set_match else 0.0
        set_matched = use_set_match and bool(tokens) and fraction >= options.orderless_threshold

        if not in_order and not (options.orderless_matching and set_matched):
            return None

        criteria: Dict[str, float] = {
            "same_ply": float(pair.ply is not None and pair.ply == len(played_prefix)),
            "reaches_key": float(key in entry.key_plies),
            "common_prefix": float(prefix_len),
            "fully_matched": float(prefix_len == len(tokens)),
            "neg_length": float(-len(tokens)),
            "specificity": float(specificity_score(entry.name)),
            "set_match": float(set_matched),
        }

        return MatchCandidate(
            entry=entry,
            raw_name=entry.name,
            entry_tokens=tokens,
            ordering_key=tuple(criteria[name] for name in order),
            set_match_fraction=fraction,
            set_matched=set_matched,
        )
