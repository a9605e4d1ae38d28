from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0.00")
# Largest value a Numeric(14, 2) column holds.
MAX_MONEY = Decimal("999999999999.99")


def quantize_money(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _clean(value):
    if isinstance(value, str):
        return value.strip().replace(",", "")
    return value


def parse_money(value: Decimal | float | int | str | None) -> Decimal:
    """Lenient form-input parsing: blank or unparsable amounts count as zero."""
    value = _clean(value)
    if value is None or value == "":
        return ZERO
    try:
        amount = quantize_money(value)
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def exceeds_money_limit(value: Decimal | float | int | str | None) -> bool:
    """True for readable amounts too large to store; blank or garbage input is not this check's concern."""
    value = _clean(value)
    if value is None or value == "":
        return False
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return False
    if amount.is_nan():
        return False
    return amount.is_infinite() or abs(amount) > MAX_MONEY


def format_money(value: Decimal | None) -> str:
    return f"{quantize_money(value or ZERO):,.2f}"
