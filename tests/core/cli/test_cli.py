"""Tests for the CLI entry point."""

import json
import os

import pytest
import yaml
from click.testing import CliRunner

from sparebook.core.cli import main

EXPORT = {
    "accounts": [
        {"id": "chk", "type": "checking", "initialBalance": 1000, "name": "Everyday"},
        {"id": "sav", "type": "savings", "initialBalance": 0, "name": "Rainy Day"},
        {"id": "brk", "type": "investment", "name": "Brokerage"},
    ],
    "transactions": [
        {"id": "t1", "accountId": "chk", "type": "income", "amount": 500, "date": "2024-03-02"},
        {"id": "t2", "accountId": "chk", "type": "transfer", "amount": 300, "date": "2024-03-03",
         "transferToId": "sav"},
        {"id": "t3", "accountId": "sav", "type": "transfer", "amount": 300, "date": "2024-03-03",
         "transferFromId": "chk"},
        {"id": "t4", "accountId": "chk", "type": "expense", "amount": 100, "date": "2024-04-01"},
    ],
    "investmentTransactions": [
        {"id": "i1", "accountId": "brk", "securityId": "AAPL", "type": "buy", "quantity": 10, "price": 100,
         "date": "2024-03-02"},
        {"id": "i2", "accountId": "brk", "securityId": "AAPL", "type": "buy", "quantity": 10, "price": 200,
         "date": "2024-03-04"},
    ],
    "securities": [{"id": "AAPL", "symbol": "AAPL", "name": "Apple Inc.", "class": "stock"}],
    "prices": [{"securityId": "AAPL", "date": "2024-03-09", "price": 190}],
}


@pytest.fixture
def export_file(tmp_dir):
    path = os.path.join(tmp_dir, "export.yaml")
    with open(path, "w") as f:
        yaml.dump(EXPORT, f)
    return path


def _invoke(*args):
    result = CliRunner().invoke(main, list(args))
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestCliGroup:
    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Sparebook" in result.output
        for command in ["balances", "holdings", "valuation", "summary", "history"]:
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_unknown_log_level(self, export_file):
        result = CliRunner().invoke(main, ["--log-level", "chatty", "balances", export_file])
        assert result.exit_code == 1
        assert "log level" in result.output


@pytest.mark.smoke
class TestBalancesCommand:
    def test_balances_as_of(self, export_file):
        payload = _invoke("balances", export_file, "--as-of", "2024-03-10")
        assert payload["balances"] == {"chk": 1200.0, "sav": 300.0, "brk": 0.0}
        assert payload["byType"]["checking"] == 1200.0
        assert payload["total"] == 1500.0

    def test_bad_as_of(self, export_file):
        result = CliRunner().invoke(main, ["balances", export_file, "--as-of", "someday"])
        assert result.exit_code == 2

    def test_json_export(self, tmp_dir):
        path = os.path.join(tmp_dir, "export.json")
        with open(path, "w") as f:
            json.dump(EXPORT, f)
        assert _invoke("balances", path, "--as-of", "2024-03-01")["total"] == 1000.0

    def test_non_mapping_export(self, tmp_dir):
        path = os.path.join(tmp_dir, "export.yaml")
        with open(path, "w") as f:
            yaml.dump(["not", "a", "mapping"], f)
        result = CliRunner().invoke(main, ["balances", path])
        assert result.exit_code == 1
        assert "mapping" in result.output


class TestPortfolioCommands:
    def test_holdings(self, export_file):
        [holding] = _invoke("holdings", export_file, "--account", "brk")
        assert holding["quantity"] == 20.0
        assert holding["avgPrice"] == 150.0
        assert holding["accountName"] == "Brokerage"

    def test_valuation(self, export_file):
        payload = _invoke("valuation", export_file)
        assert payload["total"] == 4000.0
        assert payload["source"] == "holdings"
        assert payload["accounts"][0]["allocationPercent"] == 100.0

    def test_summary(self, export_file):
        payload = _invoke("summary", export_file, "--today", "2024-03-10")
        assert payload["totalValue"] == 4000.0
        assert payload["totalCost"] == 3000.0
        assert payload["dayChange"] == 200.0

    def test_history(self, export_file):
        series = _invoke("history", export_file, "--days", "3", "--today", "2024-03-10")
        assert [p["date"] for p in series] == ["2024-03-07", "2024-03-08", "2024-03-09", "2024-03-10"]
        assert series[2]["value"] == 3800.0
        assert series[-1]["value"] == 4000.0

    def test_history_rejects_negative_window(self, export_file):
        result = CliRunner().invoke(main, ["history", export_file, "--days", "-1"])
        assert result.exit_code == 2

    def test_history_rejects_oversized_window(self, export_file):
        result = CliRunner().invoke(main, ["history", export_file, "--days", "36601"])
        assert result.exit_code == 2

    def test_bad_config_value(self, export_file, tmp_dir):
        config_path = os.path.join(tmp_dir, "sparebook.yaml")
        with open(config_path, "w") as f:
            yaml.dump({"cache": {"ttl_seconds": -1}}, f)
        result = CliRunner().invoke(main, ["--config", config_path, "holdings", export_file])
        assert result.exit_code == 1
