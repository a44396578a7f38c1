# main.py
"""
The command-line entry point for the Opening Analyzer.

Classifies one game given as move text (argument, stdin, or the built-in
sample game) and prints its per-move opening progression, or classifies every
game of a PGN file and optionally exports the progressions to CSV.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from opening_analyzer.config.settings import Settings, settings
from opening_analyzer.containers import get_container
from opening_analyzer.exceptions import OpeningAnalyzerError
from opening_analyzer.orchestration.analysis_service import OpeningAnalysisService
from opening_analyzer.output.report_generator import ReportGenerator
from opening_analyzer.utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)

SAMPLE_GAME = (
    "1. e4 e5 2. Nf3 Nc6 3. Bb5 Nf6 4. O-O Nxe4 5. d4 Nd6 6. Bxc6 dxc6 "
    "7. dxe5 Nf5 8. Qxd8+ Kxd8 9. Nc3 Ke8 10. Rd1 Be7"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opening-analyzer",
        description="Name the chess opening of a game, move by move.",
    )
    parser.add_argument("moves", nargs="?", default=None,
                        help="Move text, e.g. '1. e4 e5 2. Nf3'. Read from stdin when omitted.")
    parser.add_argument("--catalogue", default=None,
                        help="Opening catalogue file (JSON, TSV, CSV or PGN).")
    parser.add_argument("--catalogue-format", default=None,
                        choices=["auto", "json", "tsv", "csv", "pgn"])
    parser.add_argument("--pgn-file", default=None,
                        help="Classify every game of this PGN file instead of a single move text.")
    parser.add_argument("--csv-report", default=None,
                        help="Write the per-ply progressions to this CSV file.")
    parser.add_argument("--ply-limit", type=int, default=None,
                        help="Replay at most this many plies.")
    parser.add_argument("--report-limit", type=int, default=None,
                        help="Number of plies shown in the progression.")
    parser.add_argument("--orderless", action="store_true",
                        help="Also accept catalogue lines whose moves were played in another order.")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Fraction of an entry's moves required for an orderless match.")
    parser.add_argument("--prefer-set", action="store_true",
                        help="Rank orderless (set) matches ahead of all others.")
    parser.add_argument("--exact", action="store_true",
                        help="Only accept position matches; no move-sequence fallback.")
    parser.add_argument("--diagnostics", action="store_true",
                        help="Include walk-up diagnostics in JSON output.")
    parser.add_argument("--json", action="store_true", help="Print results as JSON.")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def apply_overrides(base: Settings, args: argparse.Namespace) -> Settings:
    """Returns a copy of the settings with command-line flags applied."""
    options = {}
    if args.report_limit is not None:
        options["report_limit"] = args.report_limit
    if args.orderless:
        options["orderless_matching"] = True
    if args.threshold is not None:
        options["orderless_threshold"] = args.threshold
    if args.prefer_set:
        options["prefer_set_matches"] = True
    if args.exact:
        options["require_exact_position_match"] = True
    if args.diagnostics:
        options["include_diagnostics"] = True

    catalogue = {}
    if args.catalogue is not None:
        catalogue["path"] = args.catalogue
    if args.catalogue_format is not None:
        catalogue["format"] = args.catalogue_format

    classification = base.classification.model_validate(
        {**base.classification.model_dump(), **options}
    )
    return base.model_copy(update={
        "classification": classification,
        "catalogue": base.catalogue.model_validate({**base.catalogue.model_dump(), **catalogue}),
        "default_ply_limit": args.ply_limit if args.ply_limit is not None else base.default_ply_limit,
    })


def read_move_text(args: argparse.Namespace) -> str:
    if args.moves is not None:
        return args.moves
    if not sys.stdin.isatty():
        text = sys.stdin.read()
        if text.strip():
            return text
    return SAMPLE_GAME


def run_single(service: OpeningAnalysisService, reporter: ReportGenerator, args: argparse.Namespace) -> None:
    result = service.analyze(read_move_text(args))
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        for line in reporter.format_progression(result):
            print(line)
        print(reporter.format_summary(result))
    if args.csv_report:
        reporter.generate_csv_report([("game_1", result)], Path(args.csv_report))


async def run_pgn_file(service: OpeningAnalysisService, reporter: ReportGenerator, args: argparse.Namespace) -> None:
    pairs = await service.analyze_pgn_file(Path(args.pgn_file))
    await service.shutdown()
    if args.json:
        print(json.dumps([{"game_id": record.game_id, **result.to_dict()} for record, result in pairs], indent=2))
    else:
        for record, result in pairs:
            print(f"{record.game_id}: {reporter.format_summary(result)}")
    if args.csv_report:
        reporter.generate_csv_report([(record.game_id, result) for record, result in pairs], Path(args.csv_report))


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to parse flags, wire the services and run one classification job."""
    args = build_parser().parse_args(argv)
    try:
        app_settings = apply_overrides(settings, args)
    except ValueError as e:
        print(f"Invalid option: {e}", file=sys.stderr)
        return 2
    setup_logging(log_level=args.log_level or app_settings.default_log_level)

    container = get_container(app_settings)
    service = container.resolve(OpeningAnalysisService)
    reporter = container.resolve(ReportGenerator)

    try:
        if args.pgn_file:
            asyncio.run(run_pgn_file(service, reporter, args))
        else:
            run_single(service, reporter, args)
    except OpeningAnalyzerError as e:
        logger.error("Analysis failed.", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
