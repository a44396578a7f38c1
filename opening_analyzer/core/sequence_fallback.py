# opening_analyzer/core/sequence_fallback.py
"""
Position-blind fallbacks that match on move order alone.

These are used only when no catalogue entry shares a canonical key with the
played position. They scan the whole catalogue, so they are O(entries) per call.
"""
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from opening_analyzer.core.candidate_scorer import specificity_score
from opening_analyzer.types import MoveToken, OpeningEntry


def _most_specific(matches: List[OpeningEntry]) -> Optional[OpeningEntry]:
    if not matches:
        return None
    frequency = Counter(entry.name for entry in matches)
    return max(matches, key=lambda e: (specificity_score(e.name), frequency[e.name]))


def best_entry_extending(
    entries: Iterable[OpeningEntry], played_prefix: Sequence[MoveToken]
) -> Optional[OpeningEntry]:
    """
    Finds the most specific entry whose own moves begin with the played prefix.

    Ties on specificity go to the name shared by the most matching entries.
    """
    prefix = tuple(played_prefix)
    if not prefix:
        return None
    size = len(prefix)
    matches = [entry for entry in entries if entry.tokens[:size] == prefix]
    return _most_specific(matches)


def longest_entry_within(
    entries: Iterable[OpeningEntry], game_tokens: Sequence[MoveToken]
) -> Optional[OpeningEntry]:
    """
    Finds the longest entry whose whole move list is a prefix of the game.

    This is the whole-game sequence classifier: the deepest catalogue line the
    game followed move for move, with specificity and name frequency as
    tie-breaks.
    """
    game = tuple(game_tokens)
    matches = [
        entry for entry in entries
        if entry.tokens and len(entry.tokens) <= len(game)
        and game[:len(entry.tokens)] == entry.tokens
    ]
    if not matches:
        return None
    deepest = max(len(entry.tokens) for entry in matches)
    return _most_specific([entry for entry in matches if len(entry.tokens) == deepest])
