"""
LedgerConfiguration schema.

Defines the human-authored, reviewable configuration for one school
ledger.  YAML fragments are parsed into these types by the loader,
validated by the validator, and translated into kernel inputs by the
bridges.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FolderDef:
    """Where a satellite folder lives: the anchor account's code and its name."""

    anchor_code: str
    name: str


@dataclass(frozen=True)
class SeedAccountDef:
    """One account of the seed chart.  ``parent_code`` is None for roots."""

    id: str
    code: str
    name: str
    type: str
    level: int
    parent_code: str | None = None
    is_main: bool = True
    system_tag: str | None = None


@dataclass(frozen=True)
class LedgerConfiguration:
    """The complete configuration for one school ledger."""

    config_id: str
    version: int
    school_id: str
    academic_year_id: str
    database_url: str
    default_currency: str
    code_suffix_width: int
    report_root_codes: tuple[str, ...]
    bank_folder: FolderDef
    cash_folder: FolderDef
    supplier_folder: FolderDef
    seed_accounts: tuple[SeedAccountDef, ...] = field(default_factory=tuple)
    checksum: str = ""
