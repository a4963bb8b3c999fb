"""
School ledger CLI -- operate one school ledger from the command line.

Open the chart of accounts, add and delete accounts, post balances,
create and approve journal entries, register suppliers and treasury
accounts, print statements and report totals, close the financial year.

Entry point: python -m scripts.cli <command>
"""

from scripts.cli.main import main

__all__ = ["main"]
