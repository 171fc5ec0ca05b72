"""
Price history joins.

Each query starts from the price history table and LEFT OUTER joins the
referenced records, so an entry whose material, supplier or purchase order
can no longer be resolved still produces a row (with "N/A" fields).
"""
from __future__ import annotations

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from procarni.core.errors import FetchError
from procarni.core.logging_config import logger
from procarni.domain.views import NA, PriceHistoryRow
from procarni.models import Material, PriceHistoryEntry, PurchaseOrder, Supplier


def _or_na(value) -> str:
    return value if value not in (None, "") else NA


def _row(entry: PriceHistoryEntry, **joined) -> PriceHistoryRow:
    return PriceHistoryRow(
        id=entry.id,
        supplier_id=entry.supplier_id,
        material_id=entry.material_id,
        unit_price=entry.unit_price,
        currency=entry.currency,
        exchange_rate=entry.exchange_rate,
        recorded_at=entry.recorded_at,
        purchase_order_id=entry.purchase_order_id,
        **joined,
    )


def fetch_failed(exc: SQLAlchemyError, operation: str, entity_id: str) -> FetchError:
    """Map a backend error to FetchError; timeouts get their own code."""
    log = logger.bind(operation=operation, entity_id=entity_id)
    if isinstance(exc, OperationalError) and "timeout" in str(exc).lower():
        log.error("fetch_timeout", error=str(exc))
        return FetchError(
            "Tiempo de espera agotado al consultar los datos.",
            code="fetch_timeout",
            operation=operation,
            entity_id=entity_id,
        )
    log.error("fetch_failed", error=str(exc))
    return FetchError(
        "No se pudieron obtener los datos.",
        operation=operation,
        entity_id=entity_id,
    )


def supplier_price_history(db: Session, supplier_id: str) -> list[PriceHistoryRow]:
    """All price entries of one supplier, joined with material and PO data, newest first."""
    try:
        results = (
            db.query(
                PriceHistoryEntry,
                Material.name,
                Material.code,
                Material.unit,
                PurchaseOrder.sequence_number,
                PurchaseOrder.created_at,
            )
            .outerjoin(Material, Material.id == PriceHistoryEntry.material_id)
            .outerjoin(PurchaseOrder, PurchaseOrder.id == PriceHistoryEntry.purchase_order_id)
            .filter(PriceHistoryEntry.supplier_id == supplier_id)
            .order_by(PriceHistoryEntry.recorded_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "supplier_price_history", supplier_id) from exc

    return [
        _row(
            entry,
            material_name=_or_na(name),
            material_code=_or_na(code),
            material_unit=_or_na(unit),
            po_sequence_number=po_seq,
            po_created_at=po_created,
        )
        for entry, name, code, unit, po_seq, po_created in results
    ]


def material_price_history(db: Session, material_id: str) -> list[PriceHistoryRow]:
    """All price entries of one material, joined with supplier and PO data, newest first."""
    try:
        results = (
            db.query(
                PriceHistoryEntry,
                Supplier.name,
                Supplier.code,
                Supplier.rif,
                PurchaseOrder.sequence_number,
                PurchaseOrder.created_at,
            )
            .outerjoin(Supplier, Supplier.id == PriceHistoryEntry.supplier_id)
            .outerjoin(PurchaseOrder, PurchaseOrder.id == PriceHistoryEntry.purchase_order_id)
            .filter(PriceHistoryEntry.material_id == material_id)
            .order_by(PriceHistoryEntry.recorded_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "material_price_history", material_id) from exc

    return [
        _row(
            entry,
            supplier_name=_or_na(name),
            supplier_code=_or_na(code),
            supplier_rif=_or_na(rif),
            po_sequence_number=po_seq,
            po_created_at=po_created,
        )
        for entry, name, code, rif, po_seq, po_created in results
    ]
