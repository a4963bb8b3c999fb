"""
CLI commands against a file-backed SQLite ledger.

Each ``run`` is a separate process-style invocation: a fresh config load
and a fresh LedgerContext over the same database file.
"""

import pytest

from scripts.cli import config as cli_config
from scripts.cli.main import build_parser, main
from scripts.cli.util import fmt_amount, parse_amount


@pytest.fixture
def run(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli_config, "LOG_PATH", tmp_path / "logs" / "cli.log")
    url = f"sqlite:///{tmp_path / 'ledger.db'}"

    def _run(*argv):
        code = main(["--database-url", url, "--school", "S1", "--year", "2024-2025", *argv])
        out, err = capsys.readouterr()
        return code, out, err

    return _run


class TestUtil:
    def test_fmt_amount(self):
        assert fmt_amount("1234.5") == "1,234.50"
        assert fmt_amount(0, blank_zero=True) == ""
        assert fmt_amount("-0.005") == "-0.01"

    def test_parse_amount_accepts_thousands(self):
        assert str(parse_amount("1,250.75")) == "1250.75"


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_treasury_type_choices(self):
        args = build_parser().parse_args(["add-treasury", "Main", "--type", "CashSafe"])
        assert args.type == "CashSafe"


class TestChartCommands:
    def test_init_seeds_ledger(self, run):
        code, out, _ = run("init")
        assert code == 0
        assert "Ledger S1/2024-2025 ready." in out
        assert "Year: OPEN" in out

    def test_add_uses_next_code(self, run):
        code, out, _ = run("add", "2", "Loans")
        assert code == 0
        assert "Added 204  Loans" in out

        _, tree, _ = run("tree", "--root", "2")
        assert "204" in tree and "Loans" in tree
        assert "4301" not in tree

    def test_guard_failure_exits_one(self, run):
        code, _, err = run("delete", "3")
        assert code == 1
        assert "ERROR [" in err

    def test_unknown_code(self, run):
        code, _, err = run("rename", "999", "Nothing")
        assert code == 1
        assert "ERROR [" in err

    def test_bad_posting_syntax_exits_two(self, run):
        code, _, err = run("post", "1101")
        assert code == 2
        assert "CODE=AMOUNT" in err


class TestPostingAndJournal:
    def test_post_updates_balances(self, run):
        code, out, _ = run("post", "1101=1,000", "4301=-1000")
        assert code == 0
        assert "Posted 2 amount(s) to 2 account(s)." in out
        assert "1,000.00" in out

        _, report, _ = run("report")
        assert "TOTAL" in report
        assert "Financial year 2024-2025: OPEN" in report

    def test_entry_lifecycle(self, run):
        code, out, _ = run(
            "add-entry", "--description", "Term fees",
            "--line", "1101:250:", "--line", "4301::250",
        )
        assert code == 0
        assert "#1 created as DRAFT" in out

        assert run("post-entry", "1")[0] == 0
        code, out, _ = run("approve", "1", "--user", "bursar")
        assert code == 0 and "is now APPROVED" in out

        _, statement, _ = run("statement", "1101")
        assert "Term fees" in statement
        assert "250.00" in statement

        _, journal, _ = run("journal")
        assert "Entry #1  |  APPROVED" in journal

    def test_approving_draft_fails(self, run):
        run("add-entry", "--description", "d", "--line", "1101:5:", "--line", "4301::5")
        code, _, err = run("approve", "1")
        assert code == 1
        assert "ERROR [" in err


class TestSatellitesAndClose:
    def test_satellite_accounts(self, run):
        assert run("add-supplier", "Stationery Co")[0] == 0
        code, out, _ = run("add-treasury", "National Bank", "--bank", "NBE")
        assert code == 0
        assert "GL 110201" in out

        _, listing, _ = run("satellites")
        assert "2201" in listing and "Stationery Co" in listing
        assert "110201" in listing

        assert run("delete-treasury", "110201")[0] == 0
        assert run("delete-treasury", "110201")[0] == 1

    def test_close_year_blocks_later_posting(self, run):
        run("post", "1101=10", "4301=-10")
        code, out, _ = run("close-year")
        assert code == 0
        assert "Debit 10.00   Credit 10.00" in out

        code, _, err = run("post", "1101=5")
        assert code == 1
        assert "ERROR [" in err
        assert "Year: CLOSED" in run("init")[1]

    def test_delete_of_treasury_leaf_refused(self, run):
        run("add-treasury", "Main Bank")
        code, _, err = run("delete", "110201")
        assert code == 1
        assert "SATELLITE_OWNED_ACCOUNT" in err
        assert "110201" in run("satellites")[1]
