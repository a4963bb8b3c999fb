"""CLI entry: argument parsing and command dispatch over one LedgerContext."""

import argparse
import logging
import os
import sys
from pathlib import Path

from ledger_config import get_active_config
from ledger_config.bridges import build_ledger_context
from ledger_kernel.exceptions import AccountNotFoundError, LedgerKernelError
from ledger_kernel.services.balance_poster import Posting
from ledger_kernel.services.journal_log import make_line
from ledger_kernel.services.treasury import TreasuryType
from scripts.cli import config as cli_config
from scripts.cli.util import enable_file_logging, fmt_amount, parse_amount
from scripts.cli.views import (
    show_journal,
    show_report_totals,
    show_satellites,
    show_statement,
    show_tree,
)

logger = logging.getLogger("ledger_kernel.cli")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _account_by_code(ledger, code):
    account = ledger.chart.find_by_code(code)
    if account is None:
        raise AccountNotFoundError(code)
    return account


def _entry_by_ref(ledger, ref):
    """Resolve a journal entry by journal number or id."""
    if ref.isdigit():
        for entry in ledger.journal.entries():
            if entry.journal_no == int(ref):
                return entry
    return ledger.journal.require(ref)


def _split_pair(text, sep):
    head, _, tail = text.partition(sep)
    if not tail:
        raise argparse.ArgumentTypeError(f"expected CODE{sep}AMOUNT, got {text!r}")
    return head.strip(), tail.strip()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_init(ledger, args):
    state = "CLOSED" if ledger.is_year_closed() else "OPEN"
    print(f"\n  Ledger {ledger.settings.school_id}/{ledger.settings.academic_year_id} ready.")
    print(f"  Accounts: {len(ledger.chart.accounts())}   Journal entries: "
          f"{len(ledger.journal.entries())}   Year: {state}\n")
    return 0


def cmd_tree(ledger, args):
    root_id = _account_by_code(ledger, args.root).id if args.root else None
    show_tree(ledger.aggregator(), root_id)
    return 0


def cmd_add(ledger, args):
    parent = _account_by_code(ledger, args.parent)
    account = ledger.chart.create_child_account(
        parent.id, args.name, is_main=args.main, balance=args.balance
    )
    print(f"\n  Added {account.code}  {account.name}  under {parent.code}  {parent.name}\n")
    return 0


def cmd_rename(ledger, args):
    account = _account_by_code(ledger, args.code)
    updated = ledger.chart.update_account(account.id, name=args.name)
    print(f"\n  Renamed {updated.code} to {updated.name}\n")
    return 0


def cmd_delete(ledger, args):
    account = _account_by_code(ledger, args.code)
    ledger.chart.delete_account(account.id)
    print(f"\n  Deleted {account.code}  {account.name}\n")
    return 0


def cmd_lock(ledger, args):
    account = ledger.chart.lock_account(_account_by_code(ledger, args.code).id)
    print(f"\n  Locked {account.code}  {account.name}\n")
    return 0


def cmd_post(ledger, args):
    postings = []
    for item in args.postings:
        code, amount = _split_pair(item, "=")
        postings.append(
            Posting(_account_by_code(ledger, code).id, parse_amount(amount), args.description)
        )
    changed = ledger.poster.post_transactions(postings)
    print(f"\n  Posted {len(postings)} amount(s) to {len(changed)} account(s).")
    for account in changed:
        print(f"    {account.code:<10} {account.name[:34]:<34} {fmt_amount(account.balance):>14}")
    print()
    return 0


def cmd_add_entry(ledger, args):
    lines = []
    for item in args.lines:
        parts = [p.strip() for p in item.split(":")]
        if len(parts) != 3:
            raise argparse.ArgumentTypeError(f"expected CODE:DEBIT:CREDIT, got {item!r}")
        code, debit, credit = parts
        lines.append(
            make_line(
                _account_by_code(ledger, code).id,
                debit=parse_amount(debit or "0"),
                credit=parse_amount(credit or "0"),
            )
        )
    entry = ledger.journal.add_entry(
        args.description, lines, source=args.source, source_ref_id=args.ref
    )
    flag = "" if entry.is_balanced else "  (UNBALANCED)"
    print(f"\n  Journal entry #{entry.journal_no} created as {entry.status.value}{flag}\n")
    return 0


def cmd_journal(ledger, args):
    show_journal(ledger)
    return 0


def cmd_transition(ledger, args):
    entry = _entry_by_ref(ledger, args.entry)
    if args.command == "post-entry":
        entry = ledger.journal.post_entry(entry.id)
    elif args.command == "approve":
        entry = ledger.journal.approve_entry(entry.id, approved_by=args.user)
    else:
        entry = ledger.journal.reject_entry(entry.id, args.reason)
    print(f"\n  Journal entry #{entry.journal_no} is now {entry.status.value}\n")
    return 0


def cmd_add_supplier(ledger, args):
    supplier = ledger.suppliers.add_supplier(
        args.name, args.balance, has_previous_balance=args.balance is not None
    )
    print(f"\n  Supplier {supplier.name} -> GL {supplier.gl_code}\n")
    return 0


def cmd_add_treasury(ledger, args):
    record = ledger.treasury.add_treasury_account(
        args.name,
        TreasuryType(args.type),
        args.balance,
        currency=args.currency,
        bank_name=args.bank,
    )
    print(f"\n  {record.type.value} {record.name} -> GL {record.gl_code}\n")
    return 0


def cmd_delete_treasury(ledger, args):
    for record in ledger.treasury.treasury_accounts():
        if args.ref in (record.id, record.gl_code):
            ledger.treasury.delete_treasury_account(record.id)
            print(f"\n  Deleted treasury account {record.name} ({record.gl_code})\n")
            return 0
    print(f"\n  No treasury account matches {args.ref}\n", file=sys.stderr)
    return 1


def cmd_satellites(ledger, args):
    show_satellites(ledger)
    return 0


def cmd_statement(ledger, args):
    account = _account_by_code(ledger, args.code)
    show_statement(ledger.aggregator().account_statement(account.id))
    return 0


def cmd_report(ledger, args):
    show_report_totals(ledger)
    return 0


def cmd_close_year(ledger, args):
    state = ledger.close_year()
    summary = state.summary or {}
    print(f"\n  Financial year {ledger.settings.academic_year_id} closed.")
    print(f"  Debit {summary.get('totalDebit')}   Credit {summary.get('totalCredit')}\n")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m scripts.cli",
        description="School general ledger: chart of accounts, postings, journal, year close.",
    )
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="directory with ledger.yaml and chart_of_accounts.yaml")
    parser.add_argument("--database-url", default=None,
                        help=f"overrides ledger.database_url (also ${cli_config.DATABASE_URL_ENV})")
    parser.add_argument("--school", default=None, help="school id")
    parser.add_argument("--year", default=None, help="academic year id")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug-level log file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="open (and seed) the ledger").set_defaults(func=cmd_init)

    p = sub.add_parser("tree", help="print the chart of accounts")
    p.add_argument("--root", help="only the subtree under this code")
    p.set_defaults(func=cmd_tree)

    p = sub.add_parser("add", help="add a child account with the next code")
    p.add_argument("parent", help="parent account code")
    p.add_argument("name")
    p.add_argument("--main", action="store_true", help="folder (main) account")
    p.add_argument("--balance", type=parse_amount, default=None)
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("rename", help="rename an account")
    p.add_argument("code")
    p.add_argument("name")
    p.set_defaults(func=cmd_rename)

    p = sub.add_parser("delete", help="delete an account")
    p.add_argument("code")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("lock", help="lock an account against structural edits")
    p.add_argument("code")
    p.set_defaults(func=cmd_lock)

    p = sub.add_parser("post", help="post signed amounts to account balances")
    p.add_argument("postings", nargs="+", metavar="CODE=AMOUNT")
    p.add_argument("--description", default=None)
    p.set_defaults(func=cmd_post)

    p = sub.add_parser("add-entry", help="create a journal entry")
    p.add_argument("--description", required=True)
    p.add_argument("--line", dest="lines", action="append", required=True,
                   metavar="CODE:DEBIT:CREDIT")
    p.add_argument("--source", default="manual")
    p.add_argument("--ref", default=None, help="source document reference")
    p.set_defaults(func=cmd_add_entry)

    sub.add_parser("journal", help="list journal entries").set_defaults(func=cmd_journal)

    p = sub.add_parser("post-entry", help="submit a DRAFT entry")
    p.add_argument("entry", help="journal number or id")
    p.set_defaults(func=cmd_transition)

    p = sub.add_parser("approve", help="approve a POSTED entry")
    p.add_argument("entry", help="journal number or id")
    p.add_argument("--user", default="cli")
    p.set_defaults(func=cmd_transition)

    p = sub.add_parser("reject", help="reject a POSTED entry")
    p.add_argument("entry", help="journal number or id")
    p.add_argument("--reason", default=None)
    p.set_defaults(func=cmd_transition)

    p = sub.add_parser("add-supplier", help="create a supplier and its GL account")
    p.add_argument("name")
    p.add_argument("--balance", type=parse_amount, default=None)
    p.set_defaults(func=cmd_add_supplier)

    p = sub.add_parser("add-treasury", help="create a bank or cash-safe account")
    p.add_argument("name")
    p.add_argument("--type", choices=[t.value for t in TreasuryType], default="Bank")
    p.add_argument("--balance", type=parse_amount, default=None)
    p.add_argument("--currency", default=None)
    p.add_argument("--bank", default=None, help="bank name")
    p.set_defaults(func=cmd_add_treasury)

    p = sub.add_parser("delete-treasury", help="delete a treasury account and its GL account")
    p.add_argument("ref", help="treasury id or GL code")
    p.set_defaults(func=cmd_delete_treasury)

    sub.add_parser("satellites", help="list suppliers and treasury accounts").set_defaults(
        func=cmd_satellites
    )

    p = sub.add_parser("statement", help="ledger statement of one account")
    p.add_argument("code")
    p.set_defaults(func=cmd_statement)

    sub.add_parser("report", help="report totals").set_defaults(func=cmd_report)
    sub.add_parser("close-year", help="close the financial year").set_defaults(
        func=cmd_close_year
    )
    return parser


def _environ(args) -> dict[str, str]:
    env = dict(os.environ)
    if args.database_url:
        env[cli_config.DATABASE_URL_ENV] = args.database_url
    if args.school:
        env[cli_config.SCHOOL_ID_ENV] = args.school
    if args.year:
        env[cli_config.ACADEMIC_YEAR_ENV] = args.year
    return env


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    enable_file_logging(cli_config.LOG_PATH, verbose=args.verbose)
    logger.info("ledger_cli_command", extra={"command": args.command})

    try:
        config = get_active_config(args.config_dir, environ=_environ(args))
    except (FileNotFoundError, ValueError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    ledger = build_ledger_context(config)
    try:
        with ledger:
            return args.func(ledger, args)
    except LedgerKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    except argparse.ArgumentTypeError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2
    finally:
        ledger.database.dispose()
