"""
Ordered column specs for the price history exports.

A column is a header plus the function that pulls its value out of a
PriceHistoryRow. The list order is the sheet order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from procarni.domain.currency import convert_price
from procarni.domain.purchase_orders import format_sequence_number
from procarni.domain.views import NA, PriceHistoryRow
from procarni.export.formatting import format_datetime, short_id
from procarni.web.jinja_filters import format_number_ve


@dataclass(frozen=True)
class Column:
    header: str
    extractor: Callable[[PriceHistoryRow], Any]


def headers(columns: Sequence[Column]) -> list[str]:
    return [c.header for c in columns]


def tabulate(rows: Iterable[PriceHistoryRow], columns: Sequence[Column]) -> list[list[Any]]:
    """One list per row, values in header order."""
    return [[c.extractor(row) for c in columns] for row in rows]


def _rate(row: PriceHistoryRow):
    return row.exchange_rate if row.exchange_rate else NA


def _po_id(row: PriceHistoryRow) -> str:
    return short_id(row.purchase_order_id) if row.purchase_order_id else NA


SUPPLIER_SHEET_TITLE = "Historial de Precios"
MATERIAL_SHEET_TITLE = "Historial de Precios"

SUPPLIER_COLUMNS: tuple[Column, ...] = (
    Column("ID Transacción", lambda r: short_id(r.id)),
    Column("Material", lambda r: r.material_name),
    Column("Cód. Material", lambda r: r.material_code),
    Column("Unidad", lambda r: r.material_unit),
    Column("Precio Unitario", lambda r: r.unit_price),
    Column("Moneda", lambda r: r.currency),
    Column("Tasa de Cambio (USD/VES)", _rate),
    Column("Fecha Registro", lambda r: format_datetime(r.recorded_at)),
    Column("ID Orden de Compra", _po_id),
)


def converted_price_label(row: PriceHistoryRow, base_currency: str) -> str:
    converted = convert_price(row.unit_price, row.currency, row.exchange_rate, base_currency)
    return f"{converted:.4f}" if converted is not None else NA


def material_columns(base_currency: str) -> tuple[Column, ...]:
    return (
        Column("ID Transacción", lambda r: short_id(r.id)),
        Column("Proveedor", lambda r: r.supplier_name),
        Column("Cód. Proveedor", lambda r: r.supplier_code),
        Column("Precio Unitario Original", lambda r: r.unit_price),
        Column("Moneda Original", lambda r: r.currency),
        Column("Tasa de Cambio (USD/VES)", _rate),
        Column(
            f"Precio Convertido ({base_currency})",
            lambda r: converted_price_label(r, base_currency),
        ),
        Column("Fecha Registro", lambda r: format_datetime(r.recorded_at)),
        Column("ID Orden de Compra", _po_id),
    )


# PDF tables: same rows, printed values, converted price next to the original
def _printed(value, places: int = 2) -> str:
    return format_number_ve(value, places) if value not in (None, NA) else NA


def _po_number(row: PriceHistoryRow) -> str:
    if row.po_sequence_number:
        return format_sequence_number(row.po_sequence_number, row.po_created_at)
    return _po_id(row)


def supplier_pdf_columns(base_currency: str = "USD") -> tuple[Column, ...]:
    return (
        Column("Material", lambda r: r.material_name),
        Column("Código", lambda r: r.material_code),
        Column("Unidad", lambda r: r.material_unit),
        Column("Precio Original", lambda r: _printed(r.unit_price)),
        Column("Moneda", lambda r: r.currency),
        Column("Tasa", lambda r: _printed(r.exchange_rate)),
        Column(
            f"Precio ({base_currency})",
            lambda r: _printed(convert_price(r.unit_price, r.currency, r.exchange_rate, base_currency), 4),
        ),
        Column("Fecha", lambda r: format_datetime(r.recorded_at)),
        Column("Orden de Compra", _po_number),
    )


def material_pdf_columns(base_currency: str) -> tuple[Column, ...]:
    return (
        Column("Proveedor", lambda r: r.supplier_name),
        Column("Código", lambda r: r.supplier_code),
        Column("RIF", lambda r: r.supplier_rif),
        Column("Precio Original", lambda r: _printed(r.unit_price)),
        Column("Moneda", lambda r: r.currency),
        Column("Tasa", lambda r: _printed(r.exchange_rate)),
        Column(
            f"Precio ({base_currency})",
            lambda r: _printed(convert_price(r.unit_price, r.currency, r.exchange_rate, base_currency), 4),
        ),
        Column("Fecha", lambda r: format_datetime(r.recorded_at)),
        Column("Orden de Compra", _po_number),
    )
