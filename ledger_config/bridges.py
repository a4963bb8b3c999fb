"""
Config -> Kernel Bridges.

Functions that convert a ``LedgerConfiguration`` into kernel inputs.  They
live in ledger_config (the producer) because the kernel must NEVER import
ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_ledger_context

    config = get_active_config()
    with build_ledger_context(config) as ledger:
        ...
"""

from __future__ import annotations

from ledger_config.schema import FolderDef, LedgerConfiguration
from ledger_kernel.context import LedgerContext
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.account import Account, AccountLevel, AccountType
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.settings import FolderPlacement, LedgerSettings
from ledger_kernel.storage.change_bus import ChangeBus


def build_seed_accounts(config: LedgerConfiguration) -> tuple[Account, ...]:
    """Seed accounts with ``parent_code`` resolved to the parent's id."""
    ids_by_code = {seed.code: seed.id for seed in config.seed_accounts}
    return tuple(
        Account(
            id=seed.id,
            code=seed.code,
            name=seed.name,
            type=AccountType.parse(seed.type),
            level=AccountLevel.clamp(seed.level),
            parent_id=ids_by_code[seed.parent_code] if seed.parent_code else None,
            is_main=seed.is_main,
            is_system=seed.parent_code is None,
            system_tag=seed.system_tag,
        )
        for seed in config.seed_accounts
    )


def _placement(folder: FolderDef) -> FolderPlacement:
    return FolderPlacement(anchor_code=folder.anchor_code, folder_name=folder.name)


def build_ledger_settings(config: LedgerConfiguration) -> LedgerSettings:
    return LedgerSettings(
        school_id=config.school_id,
        academic_year_id=config.academic_year_id,
        code_suffix_width=config.code_suffix_width,
        report_root_codes=config.report_root_codes,
        bank_folder=_placement(config.bank_folder),
        cash_folder=_placement(config.cash_folder),
        supplier_folder=_placement(config.supplier_folder),
        default_currency=config.default_currency,
        seed_accounts=build_seed_accounts(config),
    )


def build_database(config: LedgerConfiguration, create_tables: bool = True) -> LedgerDatabase:
    database = LedgerDatabase.from_url(config.database_url)
    if create_tables:
        database.create_tables()
    return database


def build_ledger_context(
    config: LedgerConfiguration,
    database: LedgerDatabase | None = None,
    *,
    bus: ChangeBus | None = None,
    clock: Clock | None = None,
) -> LedgerContext:
    """An unopened LedgerContext for ``config``; use it as a context manager."""
    return LedgerContext(
        database or build_database(config),
        build_ledger_settings(config),
        bus=bus,
        clock=clock,
    )
