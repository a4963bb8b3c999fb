"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the YAML fragments of a configuration directory and parses them
into the frozen dataclasses of ``ledger_config.schema``.  Runtime callers
use ``ledger_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; there are no silent defaults
  for identity fields (``id``, ``code``, ``name``, ``type``).
* Account codes are read as strings even when YAML would parse them as
  integers.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import FolderDef, LedgerConfiguration, SeedAccountDef

LEDGER_FILE = "ledger.yaml"
CHART_FILE = "chart_of_accounts.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _code(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


def parse_folder(data: dict[str, Any]) -> FolderDef:
    return FolderDef(anchor_code=_code(data["anchor_code"]), name=str(data["name"]))


def parse_seed_account(data: dict[str, Any]) -> SeedAccountDef:
    """Parse one seed account entry."""
    return SeedAccountDef(
        id=str(data["id"]),
        code=_code(data["code"]),
        name=str(data["name"]),
        type=str(data["type"]),
        level=int(data.get("level", 3)),
        parent_code=_code(data.get("parent")),
        is_main=bool(data.get("is_main", True)),
        system_tag=data.get("system_tag"),
    )


def parse_configuration(
    ledger_data: dict[str, Any],
    chart_data: dict[str, Any],
    checksum: str = "",
) -> LedgerConfiguration:
    """
    Build a ``LedgerConfiguration`` from the two parsed fragments.

    Raises:
        KeyError: if a required section or key is missing.
    """
    ledger = ledger_data["ledger"]
    codes = ledger_data.get("codes", {})
    reports = ledger_data.get("reports", {})
    folders = ledger_data["folders"]
    return LedgerConfiguration(
        config_id=str(ledger_data.get("config_id", "default")),
        version=int(ledger_data.get("version", 1)),
        school_id=str(ledger.get("school_id") or ""),
        academic_year_id=str(ledger.get("academic_year_id") or ""),
        database_url=str(ledger["database_url"]),
        default_currency=str(ledger.get("default_currency", "EGP")),
        code_suffix_width=int(codes.get("suffix_width", 2)),
        report_root_codes=tuple(
            _code(c) for c in reports.get("root_codes", ("1", "2", "4", "5"))
        ),
        bank_folder=parse_folder(folders["bank"]),
        cash_folder=parse_folder(folders["cash"]),
        supplier_folder=parse_folder(folders["supplier"]),
        seed_accounts=tuple(
            parse_seed_account(item) for item in chart_data.get("accounts", ())
        ),
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_fragments(config_dir: Path) -> tuple[dict[str, Any], dict[str, Any]]:
    """Read ``ledger.yaml`` and ``chart_of_accounts.yaml`` from a directory."""
    return (
        load_yaml_file(config_dir / LEDGER_FILE),
        load_yaml_file(config_dir / CHART_FILE),
    )
