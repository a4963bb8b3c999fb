"""
Configuration validator.

Checks a ``LedgerConfiguration`` for structural problems before it is
bridged into the kernel.  Returns every error found rather than stopping
at the first, so a config author sees the whole list.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ledger_config.schema import LedgerConfiguration

ACCOUNT_TYPES = frozenset({"Asset", "Liability", "Equity", "Revenue", "Expense"})
ROOT_CODES = ("1", "2", "3", "4", "5")


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_configuration(config: LedgerConfiguration) -> ValidationResult:
    errors: list[str] = []

    if config.code_suffix_width < 1:
        errors.append(f"codes.suffix_width must be >= 1, got {config.code_suffix_width}")

    codes: dict[str, str] = {}
    ids: set[str] = set()
    for seed in config.seed_accounts:
        if not seed.code or not seed.code.isdigit():
            errors.append(f"Seed account {seed.id}: code {seed.code!r} is not a digit string")
        if seed.code in codes:
            errors.append(f"Duplicate seed code {seed.code} ({codes[seed.code]}, {seed.id})")
        codes[seed.code] = seed.id
        if seed.id in ids:
            errors.append(f"Duplicate seed id {seed.id}")
        ids.add(seed.id)
        if seed.type not in ACCOUNT_TYPES:
            errors.append(f"Seed account {seed.code}: unknown type {seed.type!r}")
        if seed.level not in (1, 2, 3):
            errors.append(f"Seed account {seed.code}: level must be 1, 2 or 3")

    for seed in config.seed_accounts:
        if seed.parent_code is not None and seed.parent_code not in codes:
            errors.append(
                f"Seed account {seed.code}: parent {seed.parent_code} is not in the chart"
            )

    if config.seed_accounts:
        roots = {s.code for s in config.seed_accounts if s.parent_code is None}
        for code in ROOT_CODES:
            if code not in roots:
                errors.append(f"Root account {code} is missing from the seed chart")
        for code in config.report_root_codes:
            if code not in roots:
                errors.append(f"reports.root_codes: {code} is not a root account")
        for label, folder in (
            ("bank", config.bank_folder),
            ("cash", config.cash_folder),
            ("supplier", config.supplier_folder),
        ):
            if folder.anchor_code not in codes:
                errors.append(
                    f"folders.{label}: anchor {folder.anchor_code} is not in the chart"
                )

    return ValidationResult(errors=tuple(errors))
