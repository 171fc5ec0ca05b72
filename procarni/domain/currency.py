from __future__ import annotations

from decimal import Decimal
from typing import Optional

SUPPORTED_CURRENCIES = ("USD", "VES")


def convert_price(
    price: Decimal,
    currency: str,
    exchange_rate: Optional[Decimal],
    base: str,
) -> Optional[Decimal]:
    """
    Convert a recorded price to `base` using the rate stored with the entry
    (VES per USD). Returns None when the conversion is not possible.
    """
    if currency == base:
        return price

    if not exchange_rate or exchange_rate <= 0:
        return None

    if base == "USD" and currency == "VES":
        return price / exchange_rate
    if base == "VES" and currency == "USD":
        return price * exchange_rate

    return None
