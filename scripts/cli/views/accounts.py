"""CLI views: chart-of-accounts tree, suppliers and treasury accounts."""

from scripts.cli.util import fmt_amount


def show_tree(aggregator, root_id=None):
    """Print the chart as an indented tree with its display debit/credit."""
    rows = aggregator.rows(root_id)
    if not rows:
        print("\n  No accounts in the chart of accounts.\n")
        return
    W = 78
    print()
    print("=" * W)
    print("  CHART OF ACCOUNTS".center(W))
    print("=" * W)
    print(f"  {'Code':<10} {'Name':<34} {'Debit':>14} {'Credit':>14}")
    print(f"  {'-'*10} {'-'*34} {'-'*14} {'-'*14}")
    for row in rows:
        account = row.account
        name = ("  " * row.depth + account.name)[:34]
        marker = "*" if account.locked else " "
        print(
            f"  {account.code:<10} {name:<34} "
            f"{fmt_amount(row.display.debit, blank_zero=True):>14} "
            f"{fmt_amount(row.display.credit, blank_zero=True):>14}{marker}"
        )
    print(f"\n  Total: {len(rows)} accounts  (* locked)")
    print()


def show_satellites(ledger):
    """List supplier and treasury records with their GL codes."""
    W = 78
    print()
    print("=" * W)
    print("  SUPPLIERS & TREASURY".center(W))
    print("=" * W)

    suppliers = ledger.suppliers.suppliers()
    print("\n  --- Suppliers ---")
    if not suppliers:
        print("    (none)")
    else:
        print(f"    {'GL code':<10} {'Name':<40} {'Balance':>14}")
        print(f"    {'-'*10} {'-'*40} {'-'*14}")
        for s in suppliers:
            print(f"    {s.gl_code:<10} {s.name[:40]:<40} {fmt_amount(s.balance):>14}")
        print(f"    Total: {len(suppliers)} suppliers")

    treasury = ledger.treasury.treasury_accounts()
    print("\n  --- Treasury ---")
    if not treasury:
        print("    (none)")
    else:
        print(f"    {'GL code':<10} {'Name':<28} {'Type':<10} {'Cur':<4} {'Balance':>14}")
        print(f"    {'-'*10} {'-'*28} {'-'*10} {'-'*4} {'-'*14}")
        for t in treasury:
            print(
                f"    {t.gl_code:<10} {t.name[:28]:<28} {t.type.value:<10} "
                f"{t.currency:<4} {fmt_amount(t.balance):>14}"
            )
        print(f"    Total: {len(treasury)} treasury accounts")
    print()
