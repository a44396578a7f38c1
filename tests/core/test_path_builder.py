# tests/core/test_path_builder.py
from opening_analyzer.core.path_builder import (build_opening_path,
                                                build_walk_up_path, family_name,
                                                first_move_label, merge_paths)


def test_colon_name_puts_variation_fragments_first():
    path = build_opening_path("Ruy Lopez: Morphy Defense, Columbus Variation", "e4")
    assert path == ["Morphy Defense", "Columbus Variation", "Ruy Lopez", "King's Pawn Game"]


def test_variation_text_is_cleaned():
    path = build_opening_path(
        "Queen's Gambit Declined: Exchange Variation (Carlsbad), 5...c6 …", "d4"
    )
    assert path == ["Exchange Variation", "Queen's Gambit Declined", "Queen's Pawn Game"]


def test_name_without_colon_is_comma_split():
    path = build_opening_path("Italian Game, Two Knights Defense", "e4")
    assert path == ["Italian Game", "Two Knights Defense", "King's Pawn Game"]


def test_first_move_label_is_not_duplicated():
    assert build_opening_path("King's Pawn Game", "e4") == ["King's Pawn Game"]


def test_unknown_first_move_adds_no_label():
    assert build_opening_path("Ruy Lopez", None) == ["Ruy Lopez"]
    assert build_opening_path("Ruy Lopez", "Kf2") == ["Ruy Lopez"]


def test_build_opening_path_is_idempotent():
    name = "Sicilian Defense: Najdorf Variation, English Attack"
    first = build_opening_path(name, "e4")
    second = build_opening_path(name, "e4")
    assert first == second
    assert len(first) == len(set(first))


def test_first_move_label_tables():
    assert first_move_label("Nf3") == "Zukertort Opening"
    assert first_move_label("e4+") == "King's Pawn Game"
    assert first_move_label("e4", {"e4": "Open Game"}) == "Open Game"
    assert first_move_label(None) is None


def test_merge_paths_keeps_first_occurrence():
    merged = merge_paths([["Berlin Defense", "Ruy Lopez"], ["Ruy Lopez", "King's Pawn Game"]])
    assert merged == ["Berlin Defense", "Ruy Lopez", "King's Pawn Game"]


def test_family_name():
    assert family_name("Ruy Lopez: Berlin Defense") == "Ruy Lopez"
    assert family_name("London System") == "London System"


def test_walk_up_path_appends_first_move_label_last():
    path = build_walk_up_path(["Ruy Lopez: Berlin Defense", "King's Knight Opening"], "e4")
    assert path == ["Berlin Defense", "Ruy Lopez", "King's Knight Opening", "King's Pawn Game"]


def test_walk_up_path_keeps_label_named_by_catalogue():
    path = build_walk_up_path(["King's Knight Opening", "King's Pawn Game"], "e4", {"e4": "King's Pawn Game"})
    assert path == ["King's Knight Opening", "King's Pawn Game"]
    assert build_walk_up_path(["Ruy Lopez"], "Kf2") == ["Ruy Lopez"]
