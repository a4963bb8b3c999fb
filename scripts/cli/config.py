"""CLI configuration: paths and environment names."""

import os
from pathlib import Path

# Project root (parent of scripts/)
ROOT = Path(__file__).resolve().parent.parent.parent

LOG_PATH = Path(os.environ.get("LEDGER_CLI_LOG", ROOT / "logs" / "ledger_cli.log"))

DATABASE_URL_ENV = "LEDGER_DATABASE_URL"
SCHOOL_ID_ENV = "LEDGER_SCHOOL_ID"
ACADEMIC_YEAR_ENV = "LEDGER_ACADEMIC_YEAR_ID"
