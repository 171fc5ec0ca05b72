from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from procarni.domain.views import NA, LineItem, PurchaseOrderView

DEFAULT_TAX_RATE = Decimal("0.16")
CENT = Decimal("0.01")

_UNITS = ["", "UN", "DOS", "TRES", "CUATRO", "CINCO", "SEIS", "SIETE", "OCHO", "NUEVE"]
_TENS = ["", "DIEZ", "VEINTE", "TREINTA", "CUARENTA", "CINCUENTA", "SESENTA", "SETENTA", "OCHENTA", "NOVENTA"]
_HUNDREDS = [
    "", "CIENTO", "DOSCIENTOS", "TRESCIENTOS", "CUATROCIENTOS", "QUINIENTOS",
    "SEISCIENTOS", "SETECIENTOS", "OCHOCIENTOS", "NOVECIENTOS",
]
_TEENS = ["DIEZ", "ONCE", "DOCE", "TRECE", "CATORCE", "QUINCE", "DIECISEIS", "DIECISIETE", "DIECIOCHO", "DIECINUEVE"]

_CURRENCY_WORDS = {
    "VES": ("BOLIVAR", "BOLIVARES"),
    "USD": ("DOLAR", "DOLARES"),
}


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def format_sequence_number(sequence: Optional[int], created_at: Optional[datetime] = None) -> str:
    """OC-YYYY-MM-NNN, e.g. OC-2024-08-007."""
    if not sequence:
        return NA
    when = created_at or datetime.now()
    return f"OC-{when.year}-{when.month:02d}-{sequence:03d}"


def line_subtotal(item: LineItem) -> Decimal:
    return item.quantity * item.unit_price


def line_tax(item: LineItem) -> Decimal:
    if item.is_exempt:
        return Decimal("0")
    rate = item.tax_rate if item.tax_rate is not None else DEFAULT_TAX_RATE
    return line_subtotal(item) * rate


def calculate_totals(items: Iterable[LineItem]) -> Totals:
    subtotal = Decimal("0")
    tax = Decimal("0")
    for item in items:
        subtotal += line_subtotal(item)
        tax += line_tax(item)

    return Totals(
        subtotal=subtotal.quantize(CENT, rounding=ROUND_HALF_UP),
        tax=tax.quantize(CENT, rounding=ROUND_HALF_UP),
        total=(subtotal + tax).quantize(CENT, rounding=ROUND_HALF_UP),
    )


def format_payment_terms(order: PurchaseOrderView) -> str:
    if order.payment_terms == "Otro" and order.custom_payment_terms:
        return order.custom_payment_terms
    if order.payment_terms == "Crédito" and order.credit_days:
        return f"Crédito ({order.credit_days} días)"
    return order.payment_terms or "Contado"


def _group_to_words(num: int) -> str:
    hundreds, rest = divmod(num, 100)
    tens, units = divmod(rest, 10)
    words = ""

    if hundreds == 1 and tens == 0 and units == 0:
        words += "CIEN"
    elif hundreds > 0:
        words += _HUNDREDS[hundreds] + " "

    if tens == 1:
        words += _TEENS[units]
    elif tens > 1:
        words += _TENS[tens]
        if units > 0:
            words += " Y " + _UNITS[units]
    elif units > 0:
        words += _UNITS[units]

    return words.strip()


def _integer_to_words(value: int) -> str:
    if value == 0:
        return "CERO"

    millions, rest = divmod(value, 1_000_000)
    thousands, units = divmod(rest, 1000)
    parts = []

    if millions == 1:
        parts.append("UN MILLON")
    elif millions > 1:
        parts.append(f"{_integer_to_words(millions)} MILLONES")

    if thousands == 1:
        parts.append("MIL")
    elif thousands > 1:
        parts.append(f"{_group_to_words(thousands)} MIL")

    if units:
        parts.append(_group_to_words(units))

    return " ".join(parts)


def amount_to_words(amount: Decimal, currency: str) -> str:
    """
    Spanish amount in words as printed on purchase orders:
    1250.50 USD -> 'MIL DOSCIENTOS CINCUENTA DOLARES CON 50/100'.
    """
    singular, plural = _CURRENCY_WORDS.get(currency, (currency, currency))
    quantized = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    whole = int(quantized)
    cents = int((quantized - whole) * 100)

    noun = singular if whole == 1 else plural
    return f"{_integer_to_words(whole)} {noun} CON {cents:02d}/100"
