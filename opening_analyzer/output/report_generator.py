# opening_analyzer/output/report_generator.py
"""
Provides a service for rendering classification progressions.

This module contains the `ReportGenerator`, a "dumb" I/O service that only
formats results: as the per-ply console lines shown to a human, and as a CSV
export with one row per reported ply. It contains no classification logic.
"""

import csv
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import structlog

from opening_analyzer.exceptions import ReportGenerationError
from opening_analyzer.types import AnalysisResult, PlyClassification

logger = structlog.get_logger(__name__)

UNKNOWN_OPENING = "unknown"


class ReportGenerator:
    """A stateless service that renders progressions as text lines or CSV rows."""

    _CSV_HEADERS: List[str] = [
        "GameID", "Ply", "Sequence", "Opening", "ECO", "Path", "Source", "CanonicalKey",
    ]

    @staticmethod
    def format_ply(ply: PlyClassification) -> str:
        """Renders one ply as `<sequence> → <name> (<ECO>)`."""
        line = f"{ply.sequence_text} → {ply.name or UNKNOWN_OPENING}"
        if ply.eco:
            line += f" ({ply.eco})"
        return line

    def format_progression(self, result: AnalysisResult) -> List[str]:
        return [self.format_ply(ply) for ply in result.progression]

    @staticmethod
    def format_summary(result: AnalysisResult) -> str:
        """A one-line summary of the overall classification."""
        if not result.name:
            return f"Opening: {UNKNOWN_OPENING} [{result.status.value}]"
        eco = f" ({result.eco})" if result.eco else ""
        path = " > ".join(result.path)
        return f"Opening: {result.name}{eco} [{result.status.value}] path: {path}"

    def generate_csv_report(
        self, results: Sequence[Tuple[str, AnalysisResult]], output_path: Path
    ) -> None:
        """
        Writes the progressions of many games to a single CSV file.

        Args:
            results: (game id, result) pairs.
            output_path: The `pathlib.Path` to write the report to.

        Raises:
            ReportGenerationError: If the CSV file cannot be written.
        """
        if not results:
            logger.warning("No results to generate a report for. Skipping.")
            return

        rows: List[Dict[str, Any]] = []
        for game_id, result in results:
            for ply in result.progression:
                rows.append({
                    "GameID": game_id, "Ply": ply.ply, "Sequence": ply.sequence_text,
                    "Opening": ply.name or "", "ECO": ply.eco or "",
                    "Path": " > ".join(ply.path),
                    "Source": ply.source.value if ply.source else "",
                    "CanonicalKey": ply.canonical_key,
                })

        logger.info("Writing CSV report.", path=str(output_path), num_rows=len(rows))
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with output_path.open("w", newline="", encoding="utf-8") as csvfile:
                writer = csv.DictWriter(csvfile, fieldnames=self._CSV_HEADERS)
                writer.writeheader()
                writer.writerows(rows)
        except (IOError, OSError) as e:
            raise ReportGenerationError(f"Failed to write CSV report to {output_path}") from e
