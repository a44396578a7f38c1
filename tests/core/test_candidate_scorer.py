# tests/core/test_candidate_scorer.py
from collections import Counter

import pytest
from pydantic import ValidationError

from opening_analyzer.config.settings import ClassificationOptions, RankingSettings
from opening_analyzer.core.candidate_scorer import (CandidateScorer, common_prefix_length,
                                                    set_match_fraction, specificity_score)
from opening_analyzer.core.catalogue_indexer import OpeningCatalogue
from opening_analyzer.core.move_replayer import replay_game

ZUKERTORT = {"name": "Zukertort Opening", "eco": "A06", "moves": "Nf3 d5 d4 Nf6 c4"}
QGD_TRANSPOSITION = {"name": "Queen's Gambit Declined: Zukertort Transposition", "eco": "D06",
                     "moves": "d4 d5 Nf3 Nf6 c4"}
TARTAKOWER_GAME = (
    "1. Nf3 d5 2. d4 Nf6 3. c4 e6 4. Nc3 Be7 5. Bg5 O-O 6. e3 h6 "
    "7. Bh4 b6 8. cxd5 Nxd5 9. Bxe7 Qxe7 10. Nxd5 exd5"
)


def _rank_at(scorer, game, ply, **options):
    records = replay_game(game)
    record = records[ply - 1]
    counter = Counter(r.token for r in records)
    return scorer.rank_candidates(
        record.canonical_key, record.played_prefix, counter, ClassificationOptions(**options)
    )


def test_specificity_score_weights_separators():
    assert specificity_score("A: B, C") == 50 + 5 + 7
    assert specificity_score("Ruy Lopez: Berlin") > specificity_score("Ruy Lopez, Berlin")


def test_common_prefix_length():
    assert common_prefix_length(["e4", "e5", "Nf3"], ["e4", "e5", "Bc4"]) == 2
    assert common_prefix_length([], ["e4"]) == 0


def test_set_match_fraction_counts_multiset():
    assert set_match_fraction(["Nf3", "Nf3"], Counter({"Nf3": 1})) == 0.5
    assert set_match_fraction(["e4", "e5"], Counter({"e5": 1, "e4": 1})) == 1.0
    assert set_match_fraction([], Counter({"e4": 1})) == 0.0


def test_prefers_fully_matched_shortest_entry(catalogue):
    scorer = CandidateScorer(catalogue)
    ranked = _rank_at(scorer, "1. e4 e5 2. Nf3 Nc6 3. Bb5", 5)
    assert ranked[0].raw_name == "Ruy Lopez"
    assert ranked[0].entry.eco == "C60"


def test_rejects_transposed_move_order(catalogue):
    scorer = CandidateScorer(catalogue)
    assert _rank_at(scorer, "1. c4 e6 2. d4 d5", 4) == []


def test_orderless_matching_accepts_transposition(catalogue):
    scorer = CandidateScorer(catalogue)
    ranked = _rank_at(scorer, "1. c4 e6 2. d4 d5", 4, orderless_matching=True)

    assert [c.raw_name for c in ranked] == ["Queen's Gambit Declined"]
    assert ranked[0].set_matched
    assert ranked[0].set_match_fraction == 1.0


def test_orderless_threshold_above_one_is_clamped(catalogue):
    scorer = CandidateScorer(catalogue)
    ranked = _rank_at(scorer, "1. c4 e6 2. d4 d5", 4, orderless_matching=True, orderless_threshold=1.5)
    assert ranked[0].set_matched


def test_default_order_keeps_strict_match_ahead_of_set_match():
    catalogue = OpeningCatalogue.from_records([ZUKERTORT, QGD_TRANSPOSITION])
    scorer = CandidateScorer(catalogue)

    strict = _rank_at(scorer, TARTAKOWER_GAME, 5)
    assert [c.raw_name for c in strict] == ["Zukertort Opening"]

    orderless = _rank_at(scorer, TARTAKOWER_GAME, 5, orderless_matching=True)
    assert [c.raw_name for c in orderless] == ["Zukertort Opening", QGD_TRANSPOSITION["name"]]
    assert all(c.set_matched for c in orderless)


def test_prefer_set_promotes_more_specific_set_match():
    catalogue = OpeningCatalogue.from_records([ZUKERTORT, QGD_TRANSPOSITION])
    scorer = CandidateScorer(catalogue)

    ranked = _rank_at(scorer, TARTAKOWER_GAME, 5, orderless_matching=True, prefer_set_matches=True)
    assert ranked[0].raw_name == QGD_TRANSPOSITION["name"]
    assert ranked[0].set_matched


def test_best_entry_for_key_returns_none_for_unknown_key(catalogue):
    scorer = CandidateScorer(catalogue)
    record = replay_game("h4")[0]
    assert scorer.best_entry_for_key(
        record.canonical_key, record.played_prefix, Counter(["h4"]), ClassificationOptions()
    ) is None


def test_custom_ranking_order_is_applied(catalogue):
    # Specificity first: the Berlin outranks the fully matched Ruy Lopez.
    ranking = RankingSettings(default_order=(
        "specificity", "same_ply", "reaches_key", "common_prefix",
        "fully_matched", "neg_length", "set_match",
    ))
    scorer = CandidateScorer(catalogue, ranking)
    ranked = _rank_at(scorer, "1. e4 e5 2. Nf3 Nc6 3. Bb5", 5)
    assert ranked[0].raw_name == "Ruy Lopez: Berlin Defense, Rio Gambit Accepted"


def test_ranking_order_must_be_permutation():
    with pytest.raises(ValidationError):
        RankingSettings(default_order=("same_ply", "same_ply"))
