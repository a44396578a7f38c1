# tests/test_main.py
import io
import json

import pytest

import main


@pytest.fixture
def no_stdin(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))


def test_cli_falls_back_to_sample_game(no_stdin, capsys):
    assert main.main([]) == 0
    out = capsys.readouterr().out
    assert out.startswith("1. e4 → King's Pawn Game")
    assert "Opening: unknown [no_match]" in out


def test_cli_reads_moves_from_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("1. d4\n"))
    assert main.main(["--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "first_move_fallback"
    assert payload["name"] == "Queen's Pawn Game"


def test_cli_json_output_with_catalogue(tmp_path, capsys, catalogue_records):
    catalogue_path = tmp_path / "openings.json"
    catalogue_path.write_text(json.dumps(catalogue_records), encoding="utf-8")

    code = main.main(["--catalogue", str(catalogue_path), "--json", "--report-limit", "6", main.SAMPLE_GAME])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["name"] == "Ruy Lopez: Berlin Defense, Rio Gambit Accepted"
    assert len(payload["progression"]) == 6


def test_cli_exact_flag_disables_fallbacks(capsys):
    assert main.main(["--exact", "--json", "1. e4"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "no_match"


def test_cli_pgn_file_with_csv_report(tmp_path, capsys, catalogue_records):
    catalogue_path = tmp_path / "openings.json"
    catalogue_path.write_text(json.dumps(catalogue_records), encoding="utf-8")
    pgn_path = tmp_path / "games.pgn"
    pgn_path.write_text('[Event "A"]\n\n1. e4 e5 2. Nf3 Nc6 3. Bb5 *\n')
    report_path = tmp_path / "report.csv"

    code = main.main([
        "--catalogue", str(catalogue_path), "--pgn-file", str(pgn_path),
        "--csv-report", str(report_path),
    ])

    assert code == 0
    assert "game_1: Opening: Ruy Lopez (C60) [matched]" in capsys.readouterr().out
    assert report_path.exists()


def test_cli_rejects_invalid_option_values():
    assert main.main(["--report-limit", "-1", "1. e4"]) == 2


def test_cli_reports_missing_pgn_file(tmp_path):
    assert main.main(["--pgn-file", str(tmp_path / "missing.pgn")]) == 1
