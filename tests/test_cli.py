"""Tests for the click command group."""

from click.testing import CliRunner

from cefrplacement.cli import main


def test_banks_lists_bundled_bank(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    result = CliRunner().invoke(main, ["--verbose", "banks"])
    assert result.exit_code == 0
    assert "core_grammar" in result.output


def test_take_reports_bad_seed(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("CEFRPLACEMENT_SEED", "seven")
    result = CliRunner().invoke(main, ["take"])
    assert result.exit_code == 1
    assert "CEFRPLACEMENT_SEED must be an integer" in result.output


def test_take_reports_unknown_bank(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    result = CliRunner().invoke(main, ["take", "--bank", "missing", "--seed", "1"])
    assert result.exit_code == 1
    assert "Unknown question bank" in result.output
