# tests/core/test_move_replayer.py
import chess
import pytest

from opening_analyzer.core.move_replayer import (build_sequence_text, canonical_key,
                                                 canonicalize_position, parse_move,
                                                 replay_game, strip_annotations,
                                                 tokenize_moves)


def test_strip_annotations_removes_non_move_text():
    text = '[Event "Casual"]\n1. e4 {best by test} e5 (1... c5 (1... e6)) 2. Nf3 $1 Nc6 ; main line\n1-0'
    assert strip_annotations(text) == "1. e4 e5 2. Nf3 Nc6"


def test_tokenize_moves_drops_move_numbers():
    assert tokenize_moves("1.e4 e5 2. Nf3 2...Nc6 12.") == ["e4", "e5", "Nf3", "Nc6"]


def test_replay_normalizes_tokens_to_san():
    records = replay_game("e2e4 e7e5 g1f3")
    assert [r.token for r in records] == ["e4", "e5", "Nf3"]
    assert [r.raw_token for r in records] == ["e2e4", "e7e5", "g1f3"]
    assert records[-1].uci == "g1f3"
    assert records[-1].played_prefix == ("e4", "e5", "Nf3")


def test_replay_accepts_zero_castling_and_glyphs():
    records = replay_game("1. e4!! e5?! 2. Nf3 Nc6 3. Bc4 Bc5 4. 0-0")
    assert len(records) == 7
    assert records[-1].token == "O-O"


def test_replay_stops_at_first_illegal_move():
    records = replay_game("1. e4 e5 2. Ke3 Nc6 3. Nf3")
    assert [r.token for r in records] == ["e4", "e5"]


def test_replay_stops_at_null_move():
    assert len(replay_game("e4 -- e5")) == 1


def test_replay_respects_ply_limit():
    records = replay_game("1. e4 e5 2. Nf3 Nc6", ply_limit=3)
    assert [r.ply for r in records] == [1, 2, 3]


def test_replay_of_result_marker_only_is_empty():
    assert replay_game("1/2-1/2") == []
    assert replay_game("") == []


def test_canonical_key_is_deterministic():
    first = replay_game("1. d4 Nf6 2. c4 e6 3. Nc3 Bb4")
    second = replay_game("1. d4 Nf6 2. c4 e6 3. Nc3 Bb4")
    assert [r.canonical_key for r in first] == [r.canonical_key for r in second]


def test_canonical_key_ignores_move_counters():
    records = replay_game("1. Nf3 Nf6 2. Ng1 Ng8")
    assert records[-1].canonical_key == canonical_key(chess.Board())


def test_canonical_key_omits_unusable_en_passant_square():
    records = replay_game("1. e4")
    assert records[0].canonical_key == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq -"


def test_canonicalize_position_drops_clocks():
    fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
    assert canonicalize_position(fen) == replay_game("e4")[0].canonical_key


def test_canonicalize_position_rejects_garbage():
    with pytest.raises(ValueError):
        canonicalize_position("not a position")


def test_parse_move_coordinate_promotion():
    board = chess.Board("8/4P3/8/8/8/8/k7/4K3 w - - 0 1")
    assert parse_move(board, "e7e8Q") == chess.Move.from_uci("e7e8q")


def test_build_sequence_text():
    assert build_sequence_text(["e4", "e5", "Nf3"]) == "1. e4 e5 2. Nf3"
    assert build_sequence_text([]) == ""
