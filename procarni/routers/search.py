# procarni/routers/search.py
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from procarni.auth.deps import get_current_user
from procarni.db import get_db
from procarni.models.user import User
from procarni.repositories import supplier_materials

router = APIRouter(prefix="/api", tags=["search"])


@router.get("/materials/search")
def search_materials(
    q: Optional[str] = Query(None),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [asdict(m) for m in supplier_materials.search_materials(db, q)]


@router.get("/materials/{material_id}/suppliers")
def suppliers_by_material(
    material_id: str,
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [asdict(s) for s in supplier_materials.suppliers_by_material(db, material_id)]


@router.get("/suppliers/{supplier_id}/materials")
def materials_by_supplier(
    supplier_id: str,
    q: Optional[str] = Query(None),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [asdict(m) for m in supplier_materials.search_materials_by_supplier(db, supplier_id, q)]
