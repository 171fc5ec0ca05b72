from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procarni.domain.views import NA, MaterialForSupplier, SupplierForMaterial
from procarni.models import Material, Supplier, SupplierMaterial
from procarni.repositories.price_history import fetch_failed

SEARCH_PAGE_SIZE = 10


def _or_na(value) -> str:
    return value if value not in (None, "") else NA


def _contains_pattern(needle: str) -> str:
    # % and _ in user input are literal characters
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def suppliers_by_material(db: Session, material_id: str) -> list[SupplierForMaterial]:
    """Suppliers linked to a material, flattened with the per-pair specification."""
    try:
        results = (
            db.query(SupplierMaterial.specification, Supplier)
            .join(Supplier, Supplier.id == SupplierMaterial.supplier_id)
            .filter(SupplierMaterial.material_id == material_id)
            .order_by(Supplier.name)
            .all()
        )
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "suppliers_by_material", material_id) from exc

    return [
        SupplierForMaterial(
            supplier_id=supplier.id,
            name=supplier.name,
            code=_or_na(supplier.code),
            rif=_or_na(supplier.rif),
            email=supplier.email,
            phone=supplier.phone,
            specification=specification,
        )
        for specification, supplier in results
    ]


def search_materials_by_supplier(
    db: Session,
    supplier_id: str,
    query: Optional[str] = None,
) -> list[MaterialForSupplier]:
    """
    Materials a supplier offers. The optional filter is a case-insensitive
    substring match on name or code, applied to the joined result; at most
    SEARCH_PAGE_SIZE rows come back.
    """
    try:
        results = (
            db.query(SupplierMaterial.specification, Material)
            .join(Material, Material.id == SupplierMaterial.material_id)
            .filter(SupplierMaterial.supplier_id == supplier_id)
            .order_by(Material.name)
            .all()
        )
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "search_materials_by_supplier", supplier_id) from exc

    rows = [
        MaterialForSupplier(
            material_id=material.id,
            name=material.name,
            code=_or_na(material.code),
            category=_or_na(material.category),
            unit=_or_na(material.unit),
            is_exempt=bool(material.is_exempt),
            specification=specification,
        )
        for specification, material in results
    ]

    needle = (query or "").strip().lower()
    if needle:
        rows = [r for r in rows if needle in r.name.lower() or needle in r.code.lower()]

    return rows[:SEARCH_PAGE_SIZE]


def search_materials(db: Session, query: Optional[str] = None) -> list[MaterialForSupplier]:
    """Catalog search by name or code, case-insensitive."""
    q = db.query(Material)
    needle = (query or "").strip().lower()
    if needle:
        pattern = _contains_pattern(needle)
        q = q.filter(
            or_(
                func.lower(Material.name).like(pattern, escape="\\"),
                func.lower(Material.code).like(pattern, escape="\\"),
            )
        )

    try:
        materials = q.order_by(Material.name).limit(SEARCH_PAGE_SIZE).all()
    except SQLAlchemyError as exc:
        raise fetch_failed(exc, "search_materials", needle or "*") from exc

    return [
        MaterialForSupplier(
            material_id=m.id,
            name=m.name,
            code=_or_na(m.code),
            category=_or_na(m.category),
            unit=_or_na(m.unit),
            is_exempt=bool(m.is_exempt),
            specification=None,
        )
        for m in materials
    ]
