from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procarni.core.errors import NotFoundError
from procarni.domain.views import NA, LineItem, PartySnapshot, PurchaseOrderView, QuoteRequestView
from procarni.models import Company, Material, PurchaseOrder, QuoteRequest, Supplier
from procarni.repositories.price_history import fetch_failed


def _get(db: Session, model, entity_id: str, operation: str):
    try:
        return db.get(model, entity_id)
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, operation, entity_id) from exc


def get_supplier(db: Session, supplier_id: str) -> Supplier:
    supplier = _get(db, Supplier, supplier_id, "get_supplier")
    if not supplier:
        raise NotFoundError("Proveedor no encontrado.", entity_id=supplier_id)
    return supplier


def get_material(db: Session, material_id: str) -> Material:
    material = _get(db, Material, material_id, "get_material")
    if not material:
        raise NotFoundError("Material no encontrado.", entity_id=material_id)
    return material


def _supplier_snapshot(db: Session, supplier_id: Optional[str]) -> PartySnapshot:
    supplier = _get(db, Supplier, supplier_id, "get_supplier") if supplier_id else None
    if not supplier:
        return PartySnapshot()
    return PartySnapshot(
        name=supplier.name or NA,
        rif=supplier.rif or NA,
        code=supplier.code,
        email=supplier.email,
        phone=supplier.phone,
        address=supplier.address,
    )


def _company_snapshot(db: Session, company_id: Optional[str]) -> PartySnapshot:
    company = _get(db, Company, company_id, "get_company") if company_id else None
    if not company:
        return PartySnapshot()
    return PartySnapshot(
        name=company.name or NA,
        rif=company.rif or NA,
        email=company.email,
        phone=company.phone,
        address=company.address,
        logo_url=company.logo_url,
    )


def get_purchase_order(db: Session, order_id: str) -> PurchaseOrderView:
    """Purchase order with its items, supplier and company resolved."""
    order = _get(db, PurchaseOrder, order_id, "get_purchase_order")
    if not order:
        raise NotFoundError("Orden de compra no encontrada.", entity_id=order_id)

    try:
        items = [
            LineItem(
                material_name=item.material_name,
                quantity=Decimal(item.quantity),
                unit=item.unit,
                unit_price=Decimal(item.unit_price),
                tax_rate=item.tax_rate,
                is_exempt=bool(item.is_exempt),
            )
            for item in order.items
        ]
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "get_purchase_order_items", order_id) from exc

    return PurchaseOrderView(
        id=order.id,
        sequence_number=order.sequence_number,
        created_at=order.created_at,
        currency=order.currency,
        exchange_rate=order.exchange_rate,
        delivery_date=order.delivery_date,
        payment_terms=order.payment_terms,
        custom_payment_terms=order.custom_payment_terms,
        credit_days=order.credit_days,
        observations=order.observations,
        created_by=order.created_by,
        supplier=_supplier_snapshot(db, order.supplier_id),
        company=_company_snapshot(db, order.company_id),
        items=items,
    )


def get_quote_request(db: Session, request_id: str) -> QuoteRequestView:
    request = _get(db, QuoteRequest, request_id, "get_quote_request")
    if not request:
        raise NotFoundError("Solicitud de cotización no encontrada.", entity_id=request_id)

    try:
        items = [
            LineItem(
                material_name=item.material_name,
                quantity=Decimal(item.quantity),
                unit=item.unit,
                description=item.description,
                is_exempt=bool(item.is_exempt),
            )
            for item in request.items
        ]
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "get_quote_request_items", request_id) from exc

    return QuoteRequestView(
        id=request.id,
        created_at=request.created_at,
        currency=request.currency,
        exchange_rate=request.exchange_rate,
        status=request.status,
        created_by=request.created_by,
        supplier=_supplier_snapshot(db, request.supplier_id),
        company=_company_snapshot(db, request.company_id),
        items=items,
    )
