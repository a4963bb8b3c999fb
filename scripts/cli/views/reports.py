"""CLI views: journal, report totals, account statement, year close."""

from scripts.cli.util import fmt_amount


def show_journal(ledger):
    """List journal entries with lines."""
    entries = ledger.journal.entries()
    if not entries:
        print("\n  No journal entries yet.\n")
        return

    codes = {a.id: a for a in ledger.chart.accounts()}
    print()
    print("=" * 72)
    print("  JOURNAL ENTRIES".center(72))
    print("=" * 72)
    print()
    for entry in entries:
        balanced = "" if entry.is_balanced else "  |  UNBALANCED"
        print(
            f"  Entry #{entry.journal_no}  |  {entry.status.value}  |  "
            f"{entry.entry_date or '-'}  |  {entry.source}{balanced}"
        )
        if entry.description:
            print(f"  Memo: {entry.description}")
        print(f"  {'Account':<30} {'Debit':>14} {'Credit':>14}")
        print(f"  {'-'*30} {'-'*14} {'-'*14}")
        for line in entry.lines:
            acct = codes.get(line.account_id)
            name = f"{acct.code}  {acct.name}" if acct else f"? {line.account_id}"
            if len(name) > 30:
                name = name[:27] + "..."
            print(
                f"  {name:<30} {fmt_amount(line.debit, blank_zero=True):>14} "
                f"{fmt_amount(line.credit, blank_zero=True):>14}"
            )
        if entry.rejection_reason:
            print(f"  Rejected: {entry.rejection_reason}")
        print()
    print(f"  Total: {len(entries)} journal entries")
    print()


def show_report_totals(ledger):
    """Per-root display totals and the report total."""
    aggregator = ledger.aggregator()
    W = 72
    print()
    print("=" * W)
    print("  REPORT TOTALS".center(W))
    print("=" * W)
    print(f"  {'Code':<8} {'Root':<32} {'Debit':>14} {'Credit':>14}")
    print(f"  {'-'*8} {'-'*32} {'-'*14} {'-'*14}")
    for code in ledger.settings.report_root_codes:
        root = ledger.chart.find_by_code(code)
        if root is None:
            continue
        pair = aggregator.display_totals(root.id)
        print(
            f"  {code:<8} {root.name[:32]:<32} "
            f"{fmt_amount(pair.debit):>14} {fmt_amount(pair.credit):>14}"
        )
    total = aggregator.report_totals()
    print(f"  {'-'*8} {'-'*32} {'-'*14} {'-'*14}")
    print(f"  {'':<8} {'TOTAL':<32} {fmt_amount(total.debit):>14} {fmt_amount(total.credit):>14}")
    state = ledger.get_close_state()
    status = f"CLOSED on {state.close_date:%Y-%m-%d}" if state.close_date else (
        "CLOSED" if ledger.is_year_closed() else "OPEN"
    )
    print(f"\n  Financial year {ledger.settings.academic_year_id}: {status}")
    print()


def show_statement(statement):
    """Dated ledger lines of one account with a running balance."""
    account = statement.account
    W = 90
    print()
    print("=" * W)
    print(f"  STATEMENT  {account.code}  {account.name}".center(W))
    print("=" * W)
    if not statement.lines:
        print("\n  No counted journal lines for this account.\n")
        return
    print(f"  {'Date':<10} {'No':>5} {'Description':<28} {'Debit':>13} {'Credit':>13} {'Balance':>13}")
    print(f"  {'-'*10} {'-'*5} {'-'*28} {'-'*13} {'-'*13} {'-'*13}")
    for line in statement.lines:
        print(
            f"  {str(line.entry_date or '-'):<10} {line.journal_no:>5} "
            f"{(line.description or '')[:28]:<28} "
            f"{fmt_amount(line.debit, blank_zero=True):>13} "
            f"{fmt_amount(line.credit, blank_zero=True):>13} "
            f"{fmt_amount(line.running_balance):>13}"
        )
    print(f"  {'-'*10} {'-'*5} {'-'*28} {'-'*13} {'-'*13} {'-'*13}")
    print(
        f"  {'':<10} {'':>5} {'TOTAL':<28} {fmt_amount(statement.total_debit):>13} "
        f"{fmt_amount(statement.total_credit):>13} {fmt_amount(statement.closing_balance):>13}"
    )
    print()
