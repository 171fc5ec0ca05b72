from decimal import Decimal

from procarni.domain.views import NA

CURRENCY_SYMBOLS = {"USD": "$", "VES": "Bs."}


def format_number_ve(value, places: int = 2, decimal_sep=",", thousand_sep=".") -> str:
    # 12345.67 -> 12.345,67
    if value is None or value == NA:
        return NA
    d = Decimal(str(value))
    sign = "-" if d < 0 else ""
    s = f"{abs(d):.{places}f}"
    whole, _, frac = s.partition(".")
    parts = []
    while whole:
        parts.append(whole[-3:])
        whole = whole[:-3]
    whole = thousand_sep.join(reversed(parts))
    return f"{sign}{whole}{decimal_sep}{frac}" if frac else f"{sign}{whole}"


def format_money(value, currency: str = "USD") -> str:
    if value is None:
        return NA
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol} {format_number_ve(value)}"


def format_quantity(value) -> str:
    if value is None:
        return NA
    d = Decimal(str(value))
    if d == d.to_integral_value():
        return format_number_ve(d, places=0)
    return format_number_ve(d, places=2)
