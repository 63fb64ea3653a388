"""Утилиты форматирования денежных сумм."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


def to_decimal(value: Any) -> Decimal:
    """Приводит ``value`` к :class:`Decimal` без двоичного шума float."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a number: {value!r}") from exc


def round_to_places(value: Any, places: int) -> Decimal:
    """Округление half-up до ``places`` знаков после точки."""
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_money(value: Any) -> Decimal:
    return round_to_places(value, 2)


def format_usd(value: Any) -> str:
    """Сумма в долларах с разделителями тысяч, например ``$1,234.50``."""

    amount = round_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
