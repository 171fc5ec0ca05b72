# procarni/routers/documents.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from procarni.auth.deps import get_current_user
from procarni.core.logging_config import logger
from procarni.db import get_db
from procarni.dependencies import get_publisher
from procarni.domain.quote_comparison import ComparedQuote, MaterialComparison
from procarni.domain.views import NA
from procarni.export.filenames import safe_filename
from procarni.models.user import User
from procarni.routers.payloads import (
    PurchaseOrderPayload,
    QuoteComparisonPayload,
    QuoteRequestPayload,
    UploadPdfPayload,
    json_payload,
)
from procarni.routers.responses import artifact_response, published_payload
from procarni.services import reports
from procarni.services.artifacts import PDF_MIME, GeneratedArtifact
from procarni.services.audit import record_audit
from procarni.services.publisher import Publisher, decode_base64_payload

router = APIRouter(prefix="/functions/v1", tags=["documents"])


@router.post("/generate-po-pdf")
def generate_po_pdf(
    user: User = Depends(get_current_user),
    payload: PurchaseOrderPayload = Depends(json_payload(PurchaseOrderPayload)),
    db: Session = Depends(get_db),
):
    logger.bind(user_id=user.id, order_id=payload.order_id).info("generate_po_pdf")
    artifact = reports.purchase_order_pdf(db, payload.order_id, generated_by=user.email)
    return artifact_response(artifact)


@router.post("/generate-qr-pdf")
def generate_qr_pdf(
    user: User = Depends(get_current_user),
    payload: QuoteRequestPayload = Depends(json_payload(QuoteRequestPayload)),
    db: Session = Depends(get_db),
):
    logger.bind(user_id=user.id, request_id=payload.request_id).info("generate_qr_pdf")
    artifact = reports.quote_request_pdf(db, payload.request_id, generated_by=user.email)
    return artifact_response(artifact)


@router.post("/generate-quote-comparison-pdf")
def generate_quote_comparison_pdf(
    user: User = Depends(get_current_user),
    payload: QuoteComparisonPayload = Depends(json_payload(QuoteComparisonPayload)),
):
    logger.bind(user_id=user.id, materials=len(payload.comparison_results)).info("generate_quote_comparison_pdf")
    comparisons = [
        MaterialComparison(
            material_name=c.material.name,
            material_code=c.material.code or NA,
            quotes=[
                ComparedQuote(
                    supplier_name=q.supplier_name or NA,
                    unit_price=q.unit_price,
                    currency=q.currency,
                    exchange_rate=q.exchange_rate,
                    converted_price=q.converted_price,
                    is_valid=q.is_valid,
                    error=q.error,
                )
                for q in c.results
            ],
            best_price=c.best_price,
        )
        for c in payload.comparison_results
    ]
    artifact = reports.quote_comparison_pdf(
        comparisons,
        payload.base_currency,
        payload.global_exchange_rate,
        payload.is_single_material,
        generated_by=user.email,
    )
    return artifact_response(artifact)


@router.post("/generate-and-upload-po-pdf")
def generate_and_upload_po_pdf(
    user: User = Depends(get_current_user),
    payload: PurchaseOrderPayload = Depends(json_payload(PurchaseOrderPayload)),
    db: Session = Depends(get_db),
    publisher: Publisher = Depends(get_publisher),
):
    artifact = reports.purchase_order_pdf(db, payload.order_id, generated_by=user.email)
    published = publisher.publish(artifact, owner_id=user.id, document_type="purchase_order")

    record_audit(db, "document_published", user.id, order_id=payload.order_id, key=published.key)
    logger.bind(user_id=user.id, order_id=payload.order_id, key=published.key).info("po_pdf_published")
    return published_payload(published)


@router.post("/upload-pdf")
def upload_pdf(
    user: User = Depends(get_current_user),
    payload: UploadPdfPayload = Depends(json_payload(UploadPdfPayload)),
    db: Session = Depends(get_db),
    publisher: Publisher = Depends(get_publisher),
):
    content = decode_base64_payload(payload.base64_data)
    artifact = GeneratedArtifact(
        filename=safe_filename(payload.filename),
        mime_type=PDF_MIME,
        content=content,
    )
    published = publisher.publish(artifact, owner_id=user.id, document_type="upload")

    record_audit(db, "document_uploaded", user.id, key=published.key, size=published.size_bytes)
    logger.bind(user_id=user.id, key=published.key).info("pdf_uploaded")
    return published_payload(published)
