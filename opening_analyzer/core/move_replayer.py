# opening_analyzer/core/move_replayer.py
"""
Turns free-form move-list text into validated, replayed half-moves.

This module acts as an Anti-Corruption Layer between loosely formatted move
text (pasted PGN, catalogue move strings, coordinate notation) and the rest of
the engine. Every token is applied to a `python-chess` board, and each
successfully applied half-move becomes a `PlyRecord` carrying the canonical key
of the resulting position. The same functions replay catalogue entries and
played games, which is what makes their canonical keys comparable.
"""
import re
from typing import Iterable, List, Optional, Sequence

import chess
import structlog

from opening_analyzer.types import CanonicalKey, MoveToken, PlyRecord

logger = structlog.get_logger(__name__)

_HEADER_LINE = re.compile(r"^\s*\[.*\]\s*$", re.MULTILINE)
_BRACE_COMMENT = re.compile(r"\{[^}]*\}")
_LINE_COMMENT = re.compile(r";[^\n]*")
_INNERMOST_VARIATION = re.compile(r"\([^()]*\)")
_NAG = re.compile(r"\$\d+")
_RESULT_MARKER = re.compile(r"(?<!\S)(?:1-0|0-1|1/2-1/2|½-½|\*)(?!\S)")
_MOVE_NUMBER = re.compile(r"^\d+\.{1,3}")
_ANNOTATION_GLYPHS = re.compile(r"[!?]+$")
_COORDINATE_MOVE = re.compile(r"^([a-h][1-8])-?([a-h][1-8])=?([qrbn])?$", re.IGNORECASE)


def strip_annotations(text: str) -> str:
    """
    Removes everything from a move-list text that is not a move.

    Tag-pair header lines, brace and semicolon comments, parenthesised
    variations (including nested ones), NAGs and result markers are dropped.
    Move numbers are handled per token by `tokenize_moves`.
    """
    body = text.replace("\r", " ")
    body = _HEADER_LINE.sub(" ", body)
    body = _BRACE_COMMENT.sub(" ", body)
    body = _LINE_COMMENT.sub(" ", body)

    # Variations nest, so peel them from the inside out.
    previous = None
    while previous != body:
        previous = body
        body = _INNERMOST_VARIATION.sub(" ", body)

    body = _NAG.sub(" ", body)
    body = _RESULT_MARKER.sub(" ", body)
    return " ".join(body.split())


def tokenize_moves(text: str) -> List[str]:
    """
    Splits a move-list text into move-token candidates.

    Move-number prefixes such as `12.` or `12...` are removed from each token,
    so both `1. e4` and `1.e4` yield `e4`. Tokens that were only a move number
    disappear.
    """
    tokens: List[str] = []
    for raw in strip_annotations(text).split():
        token = _MOVE_NUMBER.sub("", raw)
        if token:
            tokens.append(token)
    return tokens


def canonical_key(board: chess.Board) -> CanonicalKey:
    """
    Returns the position identity used to join games and catalogue entries.

    The key is the EPD of the board: piece placement, side to move, castling
    rights and en-passant target, without the halfmove and fullmove clocks.
    """
    return board.epd()


def canonicalize_position(position_text: str) -> CanonicalKey:
    """
    Canonicalizes a FEN or EPD string independently of any move list.

    Raises:
        ValueError: If the text does not describe a valid position.
    """
    fields = position_text.split()
    if not fields:
        raise ValueError("Empty position string.")
    board = chess.Board(" ".join(fields[:4]))
    return canonical_key(board)


def parse_move(board: chess.Board, token: str) -> Optional[chess.Move]:
    """
    Leniently parses one token against the current board.

    Algebraic notation is tried first, tolerating annotation glyphs, zero-based
    castling (`0-0`), redundant capture or disambiguation marks and misplaced
    check marks. Coordinate notation (`e2e4`, `e7e8q`) is the fallback.

    Returns:
        The legal move, or None when the token cannot be applied.
    """
    candidate = _ANNOTATION_GLYPHS.sub("", token)
    candidate = candidate.replace("0-0-0", "O-O-O").replace("0-0", "O-O")
    if not candidate:
        return None

    try:
        move = board.parse_san(candidate)
        # parse_san maps "--" and friends to the null move, which is not a ply.
        if move:
            return move
    except ValueError:
        pass

    match = _COORDINATE_MOVE.match(candidate)
    if match:
        from_sq, to_sq, promotion = match.groups()
        uci = f"{from_sq}{to_sq}{promotion or ''}".lower()
        move = chess.Move.from_uci(uci)
        if board.is_legal(move):
            return move

    return None


def replay_tokens(
    tokens: Iterable[str], ply_limit: Optional[int] = None
) -> List[PlyRecord]:
    """
    Applies move tokens from the standard starting position.

    Replay stops silently at the first token that cannot be parsed or is
    illegal; everything after it is discarded.

    Args:
        tokens: Move-token candidates in playing order.
        ply_limit: The maximum number of half-moves to apply. None means no limit.

    Returns:
        One `PlyRecord` per applied half-move, possibly empty.
    """
    board = chess.Board()
    records: List[PlyRecord] = []
    played: List[MoveToken] = []

    for raw_token in tokens:
        if ply_limit is not None and len(records) >= ply_limit:
            break

        move = parse_move(board, raw_token)
        if move is None:
            logger.debug(
                "Stopping replay at unplayable token.",
                ply=len(records) + 1, token=raw_token
            )
            break

        # Store the board's own SAN so catalogue and game tokens share one notation.
        san = board.san(move)
        board.push(move)
        played.append(san)
        records.append(
            PlyRecord(
                ply=len(records) + 1,
                token=san,
                raw_token=raw_token,
                uci=move.uci(),
                canonical_key=canonical_key(board),
                played_prefix=tuple(played),
            )
        )

    return records


def replay_game(text: str, ply_limit: Optional[int] = None) -> List[PlyRecord]:
    """Tokenizes a move-list text and replays it. See `replay_tokens`."""
    return replay_tokens(tokenize_moves(text), ply_limit)


def build_sequence_text(tokens: Sequence[MoveToken]) -> str:
    """Renders tokens as a numbered sequence, e.g. `1. e4 e5 2. Nf3`."""
    parts: List[str] = []
    for index, token in enumerate(tokens):
        if index % 2 == 0:
            parts.append(f"{index // 2 + 1}. {token}")
        else:
            parts.append(token)
    return " ".join(parts)
