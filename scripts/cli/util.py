"""CLI utilities: amount formatting and parsing, file logging."""

import logging
from decimal import Decimal

from ledger_kernel.domain.money import round_money, to_decimal
from ledger_kernel.logging_config import configure_logging


def fmt_amount(v, blank_zero: bool = False) -> str:
    """Format amount for display (e.g. 1,234.50)."""
    d = round_money(to_decimal(v))
    if blank_zero and d == 0:
        return ""
    return f"{d:,.2f}"


def parse_amount(text: str) -> Decimal:
    """Parse a command-line amount; commas are accepted as thousands separators."""
    return to_decimal(text.replace(",", ""))


class _FlushingFileHandler(logging.FileHandler):
    """FileHandler that flushes after every emit so the log updates immediately."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


def enable_file_logging(log_path, verbose: bool = False) -> logging.Handler:
    """Send structured kernel logs to ``log_path`` instead of the console."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = _FlushingFileHandler(str(log_path), mode="a")
    configure_logging(level=logging.DEBUG if verbose else logging.INFO, handler=handler)
    return handler
