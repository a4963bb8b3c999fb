"""
Ledger Kernel

Chart-of-accounts and general-ledger core for a school administration
system:
- Code-addressed account forest with guarded mutation
- Deterministic child-code generation
- Batch balance posting and an append-only journal log
- Subtree roll-up of balances and journal totals
- Financial-year close gate
- Versioned document storage with change broadcast
"""

__version__ = "0.1.0"
