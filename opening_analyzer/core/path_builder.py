# opening_analyzer/core/path_builder.py
"""
Turns raw catalogue names into ordered, hierarchical name fragments.

Catalogue names follow the `Family, Subfamily: Variation, Subvariation`
convention. The functions here split such a name into fragments, most specific
first, and merge the fragments of several names into one deduplicated path.
All functions are pure.
"""
import re
from typing import Dict, Final, Iterable, List, Mapping, Optional

# The broad family name conventionally associated with each popular first move.
# Used as the most general fragment of every path and as a last-resort label.
POPULAR_FIRST_MOVES: Final[Dict[str, str]] = {
    "e4": "King's Pawn Game",
    "d4": "Queen's Pawn Game",
    "c4": "English Opening",
    "Nf3": "Zukertort Opening",
    "g3": "Hungarian Opening",
    "f4": "Bird Opening",
    "b3": "Nimzo-Larsen Attack",
    "Nc3": "Van Geet Opening",
    "b4": "Polish Opening",
    "e3": "Van't Kruijs Opening",
    "d3": "Mieses Opening",
    "c3": "Saragossa Opening",
    "g4": "Grob Opening",
    "a3": "Anderssen's Opening",
    "h3": "Clemenz Opening",
    "a4": "Ware Opening",
    "h4": "Kadas Opening",
    "f3": "Barnes Opening",
    "Nh3": "Amar Opening",
    "Na3": "Durkin Opening",
}

_PARENTHETICAL = re.compile(r"\([^)]*\)")
# Embedded move annotations such as "6. Bg5" or "5...e5".
_EMBEDDED_MOVES = re.compile(r"\d+\s*\.+\s*\S*")
_ELLIPSIS = re.compile(r"\.{2,}|…")


def _split_fragments(text: str) -> List[str]:
    return [fragment.strip() for fragment in text.split(",") if fragment.strip()]


def _dedupe(fragments: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for fragment in fragments:
        if fragment not in seen:
            seen.add(fragment)
            ordered.append(fragment)
    return ordered


def first_move_label(
    first_token: Optional[str], table: Mapping[str, str] = POPULAR_FIRST_MOVES
) -> Optional[str]:
    """Returns the popular family label for a first move, if one is known."""
    if not first_token:
        return None
    return table.get(first_token.rstrip("+#"))


def build_opening_path(
    raw_name: str,
    first_token: Optional[str],
    first_move_table: Mapping[str, str] = POPULAR_FIRST_MOVES,
) -> List[str]:
    """
    Splits a raw opening name into hierarchical fragments, most specific first.

    For `Ruy Lopez: Morphy Defense, Columbus Variation` and first move `e4` the
    result is `["Morphy Defense", "Columbus Variation", "Ruy Lopez",
    "King's Pawn Game"]`. Text after the colon is cleaned of parenthetical
    asides, embedded move annotations and ellipses before being split.

    Args:
        raw_name: The catalogue name.
        first_token: The game's first move, used to append the family label.
        first_move_table: The first-move → family label table.

    Returns:
        The deduplicated fragments in first-occurrence order.
    """
    if ":" in raw_name:
        family, variation = raw_name.split(":", 1)
        variation = _PARENTHETICAL.sub(" ", variation)
        variation = _EMBEDDED_MOVES.sub(" ", variation)
        variation = _ELLIPSIS.sub(" ", variation)
        variation = " ".join(variation.split())
        fragments = _split_fragments(variation) + _split_fragments(family)
    else:
        fragments = _split_fragments(raw_name)

    label = first_move_label(first_token, first_move_table)
    if label and label not in fragments:
        fragments.append(label)

    return _dedupe(fragments)


def merge_paths(paths: Iterable[Iterable[str]]) -> List[str]:
    """Flattens several fragment lists into one, keeping each fragment's first occurrence."""
    return _dedupe(fragment for path in paths for fragment in path)


def build_walk_up_path(
    raw_names: Iterable[str],
    first_token: Optional[str],
    first_move_table: Mapping[str, str] = POPULAR_FIRST_MOVES,
) -> List[str]:
    """
    Merges the fragments of several names, given deepest first, into one path.

    The first-move label is appended once at the very end, so it never lands
    ahead of a family name contributed by a shallower name.
    """
    path = merge_paths(build_opening_path(name, None) for name in raw_names)
    label = first_move_label(first_token, first_move_table)
    if label and label not in path:
        path.append(label)
    return path


def family_name(raw_name: str) -> str:
    """Returns the part of a name before the colon, i.e. its declared family."""
    return raw_name.split(":", 1)[0].strip()
