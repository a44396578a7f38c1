# opening_analyzer/services/pgn_service.py
"""
Provides a service for reading games out of PGN files for batch classification.

Games are streamed one at a time so that large files never have to be held in
memory. The blocking `python-chess` reader runs in a worker thread to keep the
event loop free. Each game is reduced to a `GameRecord`: an identifier plus its
mainline as plain SAN move text, which is exactly what the classifier consumes.
"""

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncGenerator, Generator, List, Optional, TextIO, Tuple

import chess.pgn
import structlog

from opening_analyzer.exceptions import PgnServiceError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class GameRecord:
    game_id: str; move_text: str; declared_opening: Optional[str] = None


class PgnService:
    """A stateless service for streaming classifiable games from PGN files."""

    # Patterns are tried in order against the "Site" and "Link" headers.
    _GAME_ID_PATTERNS: List[Tuple[str, re.Pattern]] = [
        ("lichess", re.compile(r"lichess\.org/([a-zA-Z0-9]{8})")),
        ("chesscom", re.compile(r"chess\.com/game/live/(\d+)")),
    ]

    @classmethod
    def extract_game_id(cls, headers: chess.pgn.Headers, ordinal: int) -> str:
        """
        Derives a stable identifier for a game.

        A lichess or chess.com URL in the headers wins; otherwise the game's
        position in the file is used.
        """
        for tag_name in ("Site", "Link"):
            value = str(headers.get(tag_name, ""))
            for prefix, pattern in cls._GAME_ID_PATTERNS:
                if match := pattern.search(value):
                    return f"{prefix}_{match.group(1)}"
        return f"game_{ordinal}"

    @staticmethod
    def mainline_text(game: chess.pgn.Game) -> str:
        """Renders a game's mainline as space-separated SAN, without numbers or comments."""
        board = game.board()
        sans = []
        for move in game.mainline_moves():
            sans.append(board.san(move))
            board.push(move)
        return " ".join(sans)

    def _sync_record_streamer(self, pgn_handle: TextIO) -> Generator[GameRecord, None, None]:
        """A synchronous generator of game records, meant to be driven from a worker thread."""
        ordinal = 0
        while True:
            try:
                game = chess.pgn.read_game(pgn_handle)
            except (ValueError, RuntimeError) as e:
                logger.warning("Skipping unreadable PGN game.", ordinal=ordinal + 1, error=str(e))
                ordinal += 1
                continue
            if game is None:
                break
            ordinal += 1
            # Custom start positions cannot be compared with catalogue lines.
            if "FEN" in game.headers:
                logger.debug("Skipping game with a custom start position.", ordinal=ordinal)
                continue
            opening = game.headers.get("Opening")
            yield GameRecord(
                game_id=self.extract_game_id(game.headers, ordinal),
                move_text=self.mainline_text(game),
                declared_opening=opening if opening and opening != "?" else None,
            )

    async def stream_games(self, pgn_filepath: Path) -> AsyncGenerator[GameRecord, None]:
        """
        Asynchronously streams game records from a PGN file.

        Yields:
            One `GameRecord` per readable game with a standard start position.

        Raises:
            PgnServiceError: If the file cannot be found or read.
        """
        def _next_record(generator):
            try:
                return next(generator)
            except StopIteration:
                return None

        try:
            with Path(pgn_filepath).open("r", encoding="utf-8", errors="replace") as pgn_handle:
                generator = self._sync_record_streamer(pgn_handle)
                while True:
                    record = await asyncio.to_thread(_next_record, generator)
                    if record is None:
                        break
                    yield record
        except FileNotFoundError as e:
            raise PgnServiceError(f"Input PGN file not found: {pgn_filepath}") from e
        except (IOError, OSError) as e:
            raise PgnServiceError(f"Failed to stream games from {pgn_filepath}: {e}") from e
