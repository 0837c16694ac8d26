"""Tests for the CLI interface."""

import csv
import io
import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from tradenorm.cli import cli
from tradenorm.parsers.errors import InvalidContainerError

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SCHWAB_FILE = str(FIXTURES_DIR / "schwab_sample.json")
FIRSTRADE_FILE = str(FIXTURES_DIR / "firstrade_sample.csv")


def _runner() -> CliRunner:
    return CliRunner()


class TestCLI:
    def test_help(self):
        result = _runner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "tradenorm" in result.output

    def test_parse_help(self):
        result = _runner().invoke(cli, ["parse", "--help"])
        assert result.exit_code == 0
        assert "--broker" in result.output
        assert "--separate" in result.output

    def test_brokers(self):
        result = _runner().invoke(cli, ["brokers"])
        assert result.exit_code == 0
        assert "Charles Schwab" in result.output
        assert "CSV" in result.output


class TestParseCommand:
    def test_schwab_json(self):
        result = _runner().invoke(cli, ["parse", "--broker", "schwab", SCHWAB_FILE])
        assert result.exit_code == 0
        trades = json.loads(result.stdout)
        assert len(trades) == 7
        assert trades[0]["type"] == "deposit"
        assert "42984L105" in result.stderr

    def test_firstrade_csv(self):
        result = _runner().invoke(
            cli, ["parse", "-b", "firstrade", "--format", "csv", FIRSTRADE_FILE]
        )
        assert result.exit_code == 0
        rows = list(csv.DictReader(io.StringIO(result.stdout)))
        assert len(rows) == 11
        assert rows[0]["type"] == "interest_income"

    def test_output_file(self, tmp_path):
        out = tmp_path / "trades.json"
        result = _runner().invoke(
            cli, ["parse", "-b", "firstrade", FIRSTRADE_FILE, "--output", str(out)]
        )
        assert result.exit_code == 0
        assert len(json.loads(out.read_text())) == 11
        assert "Wrote 11 trades" in result.stderr

    def test_separate_files(self):
        result = _runner().invoke(
            cli, ["parse", "-b", "firstrade", "--separate", FIRSTRADE_FILE, FIRSTRADE_FILE]
        )
        assert result.exit_code == 0
        assert len(json.loads(result.stdout)) == 22

    def test_missing_broker(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("TRADENORM_CONFIG", raising=False)
        result = _runner().invoke(cli, ["parse", FIRSTRADE_FILE])
        assert result.exit_code != 0
        assert "No broker given" in result.stderr

    def test_unknown_broker(self):
        result = _runner().invoke(cli, ["parse", "-b", "robinhood", FIRSTRADE_FILE])
        assert result.exit_code == 1
        assert "unsupported broker" in result.stderr

    def test_wrong_format_fails(self):
        result = _runner().invoke(cli, ["parse", "-b", "firstrade", SCHWAB_FILE])
        assert result.exit_code == 1
        assert "Failed to parse" in result.stderr

    def test_requires_files(self):
        result = _runner().invoke(cli, ["parse", "-b", "schwab"])
        assert result.exit_code != 0

    @patch("tradenorm.cli.get_parser")
    def test_container_error_exit_code(self, mock_get_parser):
        mock_get_parser.return_value.parse_files.side_effect = InvalidContainerError(
            "Charles Schwab", "invalid JSON"
        )
        result = _runner().invoke(cli, ["parse", "-b", "schwab", SCHWAB_FILE])
        assert result.exit_code == 1
        assert "invalid JSON" in result.stderr


class TestConfigIntegration:
    def test_default_broker_and_format_from_config(self, tmp_path):
        config = tmp_path / "tradenorm.toml"
        config.write_text('[parse]\ndefault_broker = "firstrade"\n\n[output]\nformat = "csv"\n')
        result = _runner().invoke(cli, ["--config", str(config), "parse", FIRSTRADE_FILE])
        assert result.exit_code == 0
        assert result.stdout.startswith("id,trade_date,type")

    def test_cwd_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("TRADENORM_CONFIG", raising=False)
        (tmp_path / "tradenorm.toml").write_text('[parse]\ndefault_broker = "schwab"\n')
        result = _runner().invoke(cli, ["summary", SCHWAB_FILE])
        assert result.exit_code == 0
        assert "Charles Schwab" in result.stdout

    def test_strict_numbers_from_config(self, tmp_path):
        bad = tmp_path / "bad.csv"
        lines = Path(FIRSTRADE_FILE).read_text().splitlines()
        bad.write_text(lines[0] + "\nAAPL,abc,150.50,BUY,APPLE INC,2025-01-15,,0,-1,0,0,,Trade\n")
        config = tmp_path / "strict.toml"
        config.write_text("[parse]\nstrict_numbers = true\n")
        result = _runner().invoke(
            cli, ["--config", str(config), "parse", "-b", "firstrade", str(bad)]
        )
        assert result.exit_code == 0
        assert "Malformed Quantity" in result.stderr

    def test_invalid_config_exits_with_error(self, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text('[parse]\ndefault_broker = "robinhood"\n')
        result = _runner().invoke(cli, ["--config", str(config), "brokers"])
        assert result.exit_code == 1
        assert "Invalid config" in result.stderr
        assert "unknown broker" in result.stderr


class TestSummaryCommand:
    def test_counts(self):
        result = _runner().invoke(cli, ["summary", "-b", "schwab", SCHWAB_FILE])
        assert result.exit_code == 0
        assert "Total trades: 7" in result.stdout
        assert "Dividend:" in result.stdout
        assert "Warnings:     1" in result.stdout
        assert "Date range:   2025-01-10 to 2025-02-12" in result.stdout

    def test_net_cash_flow(self):
        result = _runner().invoke(cli, ["summary", "-b", "schwab", SCHWAB_FILE])
        assert "Net cash flow: 12,951.93" in result.stdout
