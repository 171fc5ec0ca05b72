"""
Artifact builders: fetch the joined data for one document and render it.

Every builder returns a fully materialized GeneratedArtifact; callers decide
whether to stream it back or publish it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from procarni.core.errors import GenerationError, ProcurementError, ValidationError
from procarni.core.settings import settings
from procarni.domain.currency import SUPPORTED_CURRENCIES
from procarni.domain.purchase_orders import (
    DEFAULT_TAX_RATE,
    amount_to_words,
    calculate_totals,
    format_payment_terms,
    format_sequence_number,
    line_subtotal,
)
from procarni.domain.quote_comparison import MaterialComparison, best_price, is_best
from procarni.domain.views import NA, LineItem, PartySnapshot
from procarni.export import filenames
from procarni.export.columns import (
    MATERIAL_SHEET_TITLE,
    SUPPLIER_COLUMNS,
    SUPPLIER_SHEET_TITLE,
    headers,
    material_columns,
    material_pdf_columns,
    supplier_pdf_columns,
    tabulate,
)
from procarni.export.excel_export import build_workbook
from procarni.export.formatting import format_date, short_id
from procarni.export.pdf_export import render_pdf
from procarni.observability.metrics import documents_generated_total, generation_latency
from procarni.repositories import documents as documents_repo
from procarni.repositories.price_history import material_price_history, supplier_price_history
from procarni.services.artifacts import GeneratedArtifact
from procarni.web.jinja_filters import format_number_ve

DOCUMENT_LABELS = {
    "purchase_order": "Orden de Compra",
    "quote_request": "Solicitud de Cotización",
    "price_history": "Historial de Precios",
}


@dataclass(frozen=True)
class DocumentBundle:
    """A rendered document plus the words used to announce it."""

    artifact: GeneratedArtifact
    label: str
    number: str
    company_name: str


def _check_currency(base_currency: str) -> None:
    if base_currency not in SUPPORTED_CURRENCIES:
        raise ValidationError(
            f"Moneda base no soportada: {base_currency}.", fields=["baseCurrency"]
        )


def _observed(kind: str, build):
    with generation_latency.labels(kind=kind).time():
        try:
            artifact = build()
        except ProcurementError:
            documents_generated_total.labels(kind=kind, result="error").inc()
            raise
    documents_generated_total.labels(kind=kind, result="success").inc()
    return artifact


def _generated_on(now: Optional[datetime] = None) -> str:
    return format_date(now or datetime.now(timezone.utc))


def _company_name(company: PartySnapshot) -> str:
    return company.name if company.name != NA else settings.COMPANY_DISPLAY_NAME


def _tax_label(item: LineItem) -> str:
    if item.is_exempt:
        return NA
    rate = item.tax_rate if item.tax_rate is not None else DEFAULT_TAX_RATE
    return f"{rate * 100:.0f}%"


# ---------------------------------------------------------------------------
# Spreadsheets
# ---------------------------------------------------------------------------
def supplier_price_history_xlsx(db: Session, supplier_id: str, supplier_name: Optional[str]) -> GeneratedArtifact:
    rows = supplier_price_history(db, supplier_id)
    return _observed(
        "xlsx",
        lambda: build_workbook(
            rows,
            SUPPLIER_COLUMNS,
            SUPPLIER_SHEET_TITLE,
            filenames.supplier_xlsx_filename(supplier_name),
        ),
    )


def material_price_history_xlsx(
    db: Session, material_id: str, base_currency: str, material_name: Optional[str]
) -> GeneratedArtifact:
    _check_currency(base_currency)
    rows = material_price_history(db, material_id)
    return _observed(
        "xlsx",
        lambda: build_workbook(
            rows,
            material_columns(base_currency),
            MATERIAL_SHEET_TITLE,
            filenames.material_xlsx_filename(material_name, base_currency),
        ),
    )


# ---------------------------------------------------------------------------
# PDFs
# ---------------------------------------------------------------------------
def supplier_price_history_pdf(
    db: Session, supplier_id: str, supplier_name: Optional[str], generated_by: str
) -> GeneratedArtifact:
    supplier = documents_repo.get_supplier(db, supplier_id)
    rows = supplier_price_history(db, supplier_id)
    columns = supplier_pdf_columns("USD")
    context = {
        "title": "REPORTE DE HISTORIAL DE PRECIOS POR PROVEEDOR",
        "subject_label": "PROVEEDOR",
        "subject_name": supplier.name,
        "subject_detail": supplier.code or supplier.rif,
        "base_currency": "USD",
        "generated_on": _generated_on(),
        "generated_by": generated_by,
        "headers": headers(columns),
        "rows": tabulate(rows, columns),
        "empty_message": "No se encontró historial de precios para este proveedor.",
    }
    filename = filenames.supplier_pdf_filename(supplier_name or supplier.name)
    return _observed("pdf", lambda: render_pdf("price_history.html", context, filename))


def material_price_history_pdf(
    db: Session, material_id: str, base_currency: str, material_name: Optional[str], generated_by: str
) -> GeneratedArtifact:
    _check_currency(base_currency)
    material = documents_repo.get_material(db, material_id)
    rows = material_price_history(db, material_id)
    columns = material_pdf_columns(base_currency)
    context = {
        "title": "REPORTE DE HISTORIAL DE PRECIOS POR MATERIAL",
        "subject_label": "MATERIAL",
        "subject_name": material.name,
        "subject_detail": material.code,
        "base_currency": base_currency,
        "generated_on": _generated_on(),
        "generated_by": generated_by,
        "headers": headers(columns),
        "rows": tabulate(rows, columns),
        "empty_message": "No se encontró historial de precios para este material.",
    }
    filename = filenames.material_pdf_filename(material_name or material.name, base_currency)
    return _observed("pdf", lambda: render_pdf("price_history.html", context, filename))


def _purchase_order_bundle(db: Session, order_id: str, generated_by: str) -> DocumentBundle:
    order = documents_repo.get_purchase_order(db, order_id)
    order_number = format_sequence_number(order.sequence_number, order.created_at)
    totals = calculate_totals(order.items)

    lines = [
        {
            "item": item,
            "subtotal": line_subtotal(item),
            "tax_label": _tax_label(item),
        }
        for item in order.items
    ]
    context = {
        "title": f"Orden de Compra {order_number}",
        "order": order,
        "order_number": order_number,
        "lines": lines,
        "totals": totals,
        "amount_in_words": amount_to_words(totals.total, order.currency),
        "payment_terms": format_payment_terms(order),
        "generated_by": order.created_by or generated_by,
    }
    number = order_number if order.sequence_number else short_id(order.id)
    artifact = _observed(
        "pdf",
        lambda: render_pdf("purchase_order.html", context, filenames.purchase_order_filename(number)),
    )
    return DocumentBundle(
        artifact=artifact,
        label=DOCUMENT_LABELS["purchase_order"],
        number=number,
        company_name=_company_name(order.company),
    )


def purchase_order_pdf(db: Session, order_id: str, generated_by: str) -> GeneratedArtifact:
    return _purchase_order_bundle(db, order_id, generated_by).artifact


def _quote_request_bundle(db: Session, request_id: str, generated_by: str) -> DocumentBundle:
    request = documents_repo.get_quote_request(db, request_id)
    context = {
        "title": f"Solicitud de Cotización {short_id(request.id)}",
        "request": request,
        "generated_by": request.created_by or generated_by,
    }
    artifact = _observed(
        "pdf",
        lambda: render_pdf("quote_request.html", context, filenames.quote_request_filename(request.id)),
    )
    return DocumentBundle(
        artifact=artifact,
        label=DOCUMENT_LABELS["quote_request"],
        number=short_id(request.id),
        company_name=_company_name(request.company),
    )


def quote_request_pdf(db: Session, request_id: str, generated_by: str) -> GeneratedArtifact:
    return _quote_request_bundle(db, request_id, generated_by).artifact


def _comparison_table(comparison: MaterialComparison, base_currency: str) -> dict:
    best = best_price(comparison)
    rows = []
    for quote in comparison.quotes:
        if quote.is_valid and quote.converted_price is not None:
            compared = f"{base_currency} {format_number_ve(quote.converted_price)}"
        else:
            compared = f"INVÁLIDO ({quote.error or NA})"
        rows.append(
            {
                "supplier": quote.supplier_name or NA,
                "original": f"{quote.currency} {format_number_ve(quote.unit_price)}",
                "currency": quote.currency,
                "rate": format_number_ve(quote.exchange_rate, 4) if quote.exchange_rate else NA,
                "compared": compared,
                "best": is_best(quote, best),
                "valid": quote.is_valid,
            }
        )
    return {"title": comparison.title, "rows": rows}


def quote_comparison_pdf(
    comparisons: Sequence[MaterialComparison],
    base_currency: str,
    global_exchange_rate,
    is_single_material: bool,
    generated_by: str,
) -> GeneratedArtifact:
    """Comparison of supplier quotes, one table per material; the best valid price is highlighted."""
    _check_currency(base_currency)
    context = {
        "title": "REPORTE DE COMPARACIÓN DE COTIZACIONES",
        "base_currency": base_currency,
        "global_exchange_rate": format_number_ve(global_exchange_rate) if global_exchange_rate else None,
        "generated_on": _generated_on(),
        "generated_by": generated_by,
        "tables": [_comparison_table(c, base_currency) for c in comparisons],
    }
    code = comparisons[0].material_code if is_single_material and comparisons else None
    filename = filenames.quote_comparison_filename(code if code != NA else None)
    return _observed("pdf", lambda: render_pdf("quote_comparison.html", context, filename))


def build_document(db: Session, document_type: str, document_id: str, generated_by: str) -> DocumentBundle:
    """Render the document a delivery refers to."""
    if document_type == "purchase_order":
        return _purchase_order_bundle(db, document_id, generated_by)
    if document_type == "quote_request":
        return _quote_request_bundle(db, document_id, generated_by)
    if document_type == "price_history":
        supplier = documents_repo.get_supplier(db, document_id)
        artifact = supplier_price_history_pdf(db, document_id, None, generated_by)
        return DocumentBundle(
            artifact=artifact,
            label=DOCUMENT_LABELS["price_history"],
            number=supplier.code or short_id(supplier.id),
            company_name=settings.COMPANY_DISPLAY_NAME,
        )
    raise GenerationError(f"Tipo de documento desconocido: {document_type}")
