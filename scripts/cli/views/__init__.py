"""CLI views: accounts, reports."""

from scripts.cli.views.accounts import show_satellites, show_tree
from scripts.cli.views.reports import (
    show_journal,
    show_report_totals,
    show_statement,
)

__all__ = [
    "show_tree",
    "show_satellites",
    "show_journal",
    "show_report_totals",
    "show_statement",
]
