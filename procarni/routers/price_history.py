# procarni/routers/price_history.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from procarni.auth.deps import get_current_user
from procarni.core.logging_config import logger
from procarni.db import get_db
from procarni.models.user import User
from procarni.routers.payloads import MaterialHistoryPayload, SupplierHistoryPayload, json_payload
from procarni.routers.responses import artifact_response
from procarni.services import reports

router = APIRouter(prefix="/functions/v1", tags=["price-history"])


@router.post("/export-supplier-price-history")
def export_supplier_price_history(
    user: User = Depends(get_current_user),
    payload: SupplierHistoryPayload = Depends(json_payload(SupplierHistoryPayload)),
    db: Session = Depends(get_db),
):
    logger.bind(user_id=user.id, supplier_id=payload.supplier_id).info("export_supplier_price_history")
    artifact = reports.supplier_price_history_xlsx(db, payload.supplier_id, payload.supplier_name)
    return artifact_response(artifact)


@router.post("/export-material-price-history")
def export_material_price_history(
    user: User = Depends(get_current_user),
    payload: MaterialHistoryPayload = Depends(json_payload(MaterialHistoryPayload)),
    db: Session = Depends(get_db),
):
    logger.bind(
        user_id=user.id, material_id=payload.material_id, base_currency=payload.base_currency
    ).info("export_material_price_history")
    artifact = reports.material_price_history_xlsx(
        db, payload.material_id, payload.base_currency, payload.material_name
    )
    return artifact_response(artifact)


@router.post("/generate-supplier-price-history-pdf")
def generate_supplier_price_history_pdf(
    user: User = Depends(get_current_user),
    payload: SupplierHistoryPayload = Depends(json_payload(SupplierHistoryPayload)),
    db: Session = Depends(get_db),
):
    logger.bind(user_id=user.id, supplier_id=payload.supplier_id).info("generate_supplier_price_history_pdf")
    artifact = reports.supplier_price_history_pdf(
        db, payload.supplier_id, payload.supplier_name, generated_by=user.email
    )
    return artifact_response(artifact)


@router.post("/generate-material-price-history-pdf")
def generate_material_price_history_pdf(
    user: User = Depends(get_current_user),
    payload: MaterialHistoryPayload = Depends(json_payload(MaterialHistoryPayload)),
    db: Session = Depends(get_db),
):
    logger.bind(
        user_id=user.id, material_id=payload.material_id, base_currency=payload.base_currency
    ).info("generate_material_price_history_pdf")
    artifact = reports.material_price_history_pdf(
        db, payload.material_id, payload.base_currency, payload.material_name, generated_by=user.email
    )
    return artifact_response(artifact)
