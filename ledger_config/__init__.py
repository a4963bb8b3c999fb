"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``ledger_kernel``; the kernel MUST NEVER import from
    ``ledger_config``.  ``ledger_config.bridges`` translates the loaded
    configuration into kernel inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - The configuration must pass validation before it is returned.
    - Same YAML fragments and overrides always produce the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration directory or one of its
      fragments is missing.
    - ``ValueError`` -- validation failures.
    - ``KeyError`` -- required YAML keys missing.

Environment overrides:
    ``LEDGER_DATABASE_URL``, ``LEDGER_SCHOOL_ID``,
    ``LEDGER_ACADEMIC_YEAR_ID`` replace the corresponding ``ledger:``
    keys of ``ledger.yaml``.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version,
    checksum, scope and seed-account count.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Mapping

from ledger_config.loader import compute_checksum, load_fragments, parse_configuration
from ledger_config.schema import LedgerConfiguration
from ledger_config.validator import validate_configuration

_logger = logging.getLogger("ledger_kernel.config")

# Default configuration directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "defaults"

_ENV_OVERRIDES = {
    "LEDGER_DATABASE_URL": "database_url",
    "LEDGER_SCHOOL_ID": "school_id",
    "LEDGER_ACADEMIC_YEAR_ID": "academic_year_id",
}


def get_active_config(
    config_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Directory holding ``ledger.yaml`` and
            ``chart_of_accounts.yaml``.  Defaults to
            ledger_config/defaults/.
        environ: Environment to read overrides from.  Defaults to
            ``os.environ``.

    Returns:
        A validated, frozen ``LedgerConfiguration``.

    Raises:
        FileNotFoundError: If the directory or a fragment is missing.
        ValueError: If configuration validation fails.
    """
    directory = config_dir or _DEFAULT_CONFIG_DIR
    if not directory.is_dir():
        raise FileNotFoundError(f"Configuration directory not found: {directory}")
    env = os.environ if environ is None else environ

    ledger_data, chart_data = load_fragments(directory)
    ledger_data = copy.deepcopy(ledger_data)
    ledger_section = ledger_data.setdefault("ledger", {})
    for variable, key in _ENV_OVERRIDES.items():
        value = env.get(variable)
        if value:
            ledger_section[key] = value

    checksum = compute_checksum({"ledger": ledger_data, "chart": chart_data})
    config = parse_configuration(ledger_data, chart_data, checksum=checksum)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "scope_school_id": config.school_id,
            "scope_academic_year_id": config.academic_year_id,
            "seed_account_count": len(config.seed_accounts),
        },
    )
    return config


__all__ = ["LedgerConfiguration", "get_active_config"]
