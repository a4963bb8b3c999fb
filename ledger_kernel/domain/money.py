"""
Module: ledger_kernel.domain.money
Responsibility: Decimal conversion and the single sanctioned rounding
    function for balances and journal amounts.
Architecture position: Kernel > Domain.  Zero I/O, no kernel imports.

Invariants enforced:
    - No floats in balances.  Every amount entering the kernel goes through
      ``to_decimal`` (floats are converted through ``str`` so 0.1 stays 0.1).
    - ``round_money`` is the ONLY rounding function; balances are rounded to
      MONEY_DECIMAL_PLACES after every mutation.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")

# Amounts within this tolerance count as balanced.
BALANCE_TOLERANCE = Decimal("0.01")


def to_decimal(value: object) -> Decimal:
    """
    Convert a stored or user-supplied amount to Decimal.

    Accepts Decimal, int, float, numeric strings and None (-> 0).

    Raises:
        ValueError: If value is not numeric.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to ``decimal_places`` (ROUND_HALF_UP)."""
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def clamp_amount(value: object) -> Decimal:
    """Journal amounts are non-negative: NaN, infinities and negatives become 0."""
    try:
        amount = to_decimal(value)
    except ValueError:
        return ZERO
    if not amount.is_finite() or amount <= 0:
        return ZERO
    return amount
