# opening_analyzer/services/catalogue_service.py
"""
Provides a service for reading the opening catalogue from disk.

This module is a stateless adapter to the filesystem. It turns a catalogue
document (a JSON list of records, a lichess-style TSV/CSV export, or an ECO
PGN file) into raw records and hands them to the `OpeningCatalogue` for
indexing. Read and format failures raise specific exceptions; startup code uses
`load_or_empty` so that a broken catalogue degrades to an empty one with a
warning rather than stopping the process.
"""
import asyncio
import csv
import io
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiofiles
import chess.pgn
import structlog

from opening_analyzer.core.catalogue_indexer import OpeningCatalogue
from opening_analyzer.exceptions import (CatalogueError, CatalogueFormatError,
                                         CatalogueLoadError)
from opening_analyzer.utils import metrics

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


class CatalogueService:
    """A stateless service that loads and indexes catalogue documents."""

    _SUFFIX_FORMATS: Dict[str, str] = {
        ".json": "json", ".tsv": "tsv", ".csv": "csv", ".pgn": "pgn",
    }

    @classmethod
    def detect_format(cls, path: Path, fmt: str = "auto") -> str:
        """Resolves 'auto' from the file suffix."""
        if fmt != "auto":
            return fmt
        try:
            return cls._SUFFIX_FORMATS[path.suffix.lower()]
        except KeyError:
            raise CatalogueFormatError(f"Cannot infer catalogue format from '{path.name}'.")

    @staticmethod
    def _parse_json(text: str) -> List[Dict[str, Any]]:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise CatalogueFormatError(f"Catalogue is not valid JSON: {e}") from e

        if isinstance(document, dict):
            document = document.get("openings")
        if not isinstance(document, list) or not all(isinstance(r, dict) for r in document):
            raise CatalogueFormatError("JSON catalogue must be a list of records or an object with an 'openings' list.")
        return document

    @staticmethod
    def _parse_delimited(text: str, delimiter: str) -> List[Dict[str, Any]]:
        reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
        fields = {name.strip().lower() for name in (reader.fieldnames or [])}
        if "name" not in fields:
            raise CatalogueFormatError("Delimited catalogue needs a header row with a 'name' column.")
        return [
            {key.strip(): value for key, value in row.items() if key is not None}
            for row in reader
        ]

    @staticmethod
    def _parse_pgn(text: str) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        handle = io.StringIO(text)
        while True:
            game = chess.pgn.read_game(handle)
            if game is None:
                break
            headers = game.headers
            name = headers.get("Opening")
            if not name or name == "?":
                continue
            if variation := headers.get("Variation"):
                name = f"{name}: {variation}"

            board = game.board()
            sans = []
            for move in game.mainline_moves():
                sans.append(board.san(move))
                board.push(move)
            records.append({"name": name, "eco": headers.get("ECO"), "moves": " ".join(sans)})
        return records

    @classmethod
    def parse_records(cls, text: str, fmt: str) -> List[Dict[str, Any]]:
        """
        Parses catalogue text of a known format into raw records.

        Raises:
            CatalogueFormatError: If the text does not match the format.
        """
        if fmt == "json":
            return cls._parse_json(text)
        if fmt == "tsv":
            return cls._parse_delimited(text, "\t")
        if fmt == "csv":
            return cls._parse_delimited(text, ",")
        if fmt == "pgn":
            return cls._parse_pgn(text)
        raise CatalogueFormatError(f"Unsupported catalogue format '{fmt}'.")

    @staticmethod
    def _build(records: List[Dict[str, Any]]) -> OpeningCatalogue:
        catalogue = OpeningCatalogue.from_records(records)
        metrics.CATALOGUE_ENTRIES.set(len(catalogue))
        metrics.CATALOGUE_INDEXED_KEYS.set(catalogue.key_count)
        return catalogue

    def load(self, path: PathLike, fmt: str = "auto") -> OpeningCatalogue:
        """
        Reads and indexes a catalogue document synchronously.

        Args:
            path: The catalogue file.
            fmt: 'auto' (by suffix), 'json', 'tsv', 'csv' or 'pgn'.

        Raises:
            CatalogueLoadError: If the file cannot be read.
            CatalogueFormatError: If its content is malformed.
        """
        path = Path(path)
        fmt = self.detect_format(path, fmt)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except (IOError, OSError) as e:
            raise CatalogueLoadError(f"Could not read catalogue {path}: {e}") from e
        return self._build(self.parse_records(text, fmt))

    async def load_async(self, path: PathLike, fmt: str = "auto") -> OpeningCatalogue:
        """
        Reads a catalogue with non-blocking I/O and indexes it on a worker thread.

        Indexing replays every entry and is CPU-bound, so it is kept off the
        event loop.
        """
        path = Path(path)
        fmt = self.detect_format(path, fmt)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as f:
                text = await f.read()
        except (IOError, OSError) as e:
            raise CatalogueLoadError(f"Could not read catalogue {path}: {e}") from e
        records = self.parse_records(text, fmt)
        return await asyncio.to_thread(self._build, records)

    def load_or_empty(self, path: Optional[PathLike], fmt: str = "auto") -> OpeningCatalogue:
        """
        Loads a catalogue, degrading to an empty one on any catalogue error.

        A missing path is not an error: it simply means no catalogue is configured.
        """
        if path is None:
            logger.warning("No opening catalogue configured; every game will classify as 'no match'.")
            return self._build([])
        try:
            return self.load(path, fmt)
        except CatalogueError as e:
            logger.warning("Opening catalogue unavailable; continuing with an empty catalogue.", path=str(path), error=str(e))
            return self._build([])
