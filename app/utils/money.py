# app/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

MoneyInput = Decimal | int | float | str | None


def to_number(value: MoneyInput) -> float:
    """Converts a stored money value to a plain float. None becomes 0."""
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        return float(value) if value.strip() else 0.0
    return float(value)


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
