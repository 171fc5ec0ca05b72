from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from procarni.domain.currency import convert_price
from procarni.domain.purchase_orders import (
    amount_to_words,
    calculate_totals,
    format_payment_terms,
    format_sequence_number,
)
from procarni.domain.quote_comparison import ComparedQuote, MaterialComparison, best_price, is_best
from procarni.domain.views import NA, LineItem


# --- currency ---
def test_same_currency_is_unchanged():
    assert convert_price(Decimal("12.5"), "USD", None, "USD") == Decimal("12.5")


def test_ves_to_usd_divides_by_rate():
    assert convert_price(Decimal("365"), "VES", Decimal("36.5"), "USD") == Decimal("10")


def test_usd_to_ves_multiplies_by_rate():
    assert convert_price(Decimal("10"), "USD", Decimal("36.5"), "VES") == Decimal("365.0")


@pytest.mark.parametrize("rate", [None, Decimal("0"), Decimal("-1")])
def test_unusable_rate_is_not_convertible(rate):
    assert convert_price(Decimal("10"), "USD", rate, "VES") is None


# --- purchase order numbers ---
def test_sequence_number_format():
    assert format_sequence_number(7, datetime(2024, 8, 15)) == "OC-2024-08-007"
    assert format_sequence_number(1234, datetime(2025, 1, 2)) == "OC-2025-01-1234"


def test_sequence_number_missing():
    assert format_sequence_number(None, datetime(2024, 8, 15)) == NA


# --- totals ---
def test_totals_skip_tax_on_exempt_items():
    items = [
        LineItem(material_name="Carne", quantity=Decimal("2"), unit="kg", unit_price=Decimal("10.00")),
        LineItem(material_name="Bandeja", quantity=Decimal("1"), unit="und", unit_price=Decimal("5.00"), is_exempt=True),
    ]

    totals = calculate_totals(items)

    assert totals.subtotal == Decimal("25.00")
    assert totals.tax == Decimal("3.20")
    assert totals.total == Decimal("28.20")


def test_totals_use_item_rate_when_present():
    items = [
        LineItem(
            material_name="Servicio",
            quantity=Decimal("1"),
            unit=None,
            unit_price=Decimal("100"),
            tax_rate=Decimal("0.08"),
        )
    ]

    assert calculate_totals(items).tax == Decimal("8.00")


def test_totals_of_nothing():
    totals = calculate_totals([])
    assert (totals.subtotal, totals.tax, totals.total) == (Decimal("0.00"),) * 3


# --- amount in words ---
@pytest.mark.parametrize(
    "amount,currency,expected",
    [
        (Decimal("1"), "USD", "UN DOLAR CON 00/100"),
        (Decimal("28.20"), "USD", "VEINTE Y OCHO DOLARES CON 20/100"),
        (Decimal("100"), "VES", "CIEN BOLIVARES CON 00/100"),
        (Decimal("1250.50"), "USD", "MIL DOSCIENTOS CINCUENTA DOLARES CON 50/100"),
        (Decimal("15016.99"), "VES", "QUINCE MIL DIECISEIS BOLIVARES CON 99/100"),
        (Decimal("2000000"), "VES", "DOS MILLONES BOLIVARES CON 00/100"),
        (Decimal("0.45"), "USD", "CERO DOLARES CON 45/100"),
    ],
)
def test_amount_to_words(amount, currency, expected):
    assert amount_to_words(amount, currency) == expected


# --- payment terms ---
def _order(**kw):
    base = dict(payment_terms=None, custom_payment_terms=None, credit_days=None)
    base.update(kw)
    return SimpleNamespace(**base)


def test_payment_terms():
    assert format_payment_terms(_order()) == "Contado"
    assert format_payment_terms(_order(payment_terms="Crédito", credit_days=30)) == "Crédito (30 días)"
    assert format_payment_terms(_order(payment_terms="Otro", custom_payment_terms="50% anticipo")) == "50% anticipo"
    assert format_payment_terms(_order(payment_terms="Contado")) == "Contado"


# --- quote comparison ---
def _quote(name, price, valid=True):
    return ComparedQuote(
        supplier_name=name,
        unit_price=Decimal(price),
        currency="USD",
        converted_price=Decimal(price),
        is_valid=valid,
    )


def test_best_price_is_lowest_valid_quote():
    comparison = MaterialComparison(
        "Carne Molida",
        "MAT-001",
        quotes=[_quote("Acme", "12.5"), _quote("Lara", "11"), _quote("Otro", "5", valid=False)],
    )

    best = best_price(comparison)

    assert best == Decimal("11")
    assert [q.supplier_name for q in comparison.quotes if is_best(q, best)] == ["Lara"]
    assert comparison.title == "Carne Molida (MAT-001)"


def test_given_best_price_wins():
    comparison = MaterialComparison("Pollo", quotes=[_quote("Acme", "12.5")], best_price=Decimal("12.5"))

    assert best_price(comparison) == Decimal("12.5")
    assert comparison.title == f"Pollo ({NA})"


def test_no_valid_quotes_has_no_best():
    comparison = MaterialComparison("Pollo", quotes=[_quote("Otro", "5", valid=False)])

    assert best_price(comparison) is None
    assert not is_best(comparison.quotes[0], None)
