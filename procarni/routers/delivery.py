# procarni/routers/delivery.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from procarni.auth.deps import get_current_user
from procarni.core.errors import ValidationError
from procarni.core.logging_config import logger
from procarni.db import get_db
from procarni.dependencies import get_delivery_orchestrator
from procarni.models.user import User
from procarni.routers.payloads import SendDocumentPayload, SendEmailPayload, json_payload
from procarni.services.audit import record_audit
from procarni.services.delivery import DeliveryOrchestrator, DeliveryRequest
from procarni.services.email import EmailAttachment, send_postmark_email
from procarni.services.publisher import decode_base64_payload

router = APIRouter(prefix="/functions/v1", tags=["delivery"])


@router.post("/send-email")
def send_email(
    user: User = Depends(get_current_user),
    payload: SendEmailPayload = Depends(json_payload(SendEmailPayload)),
    db: Session = Depends(get_db),
):
    """Plain e-mail relay, optionally with one base64 attachment."""
    attachments = []
    if payload.attachment_base64 or payload.attachment_filename:
        if not (payload.attachment_base64 and payload.attachment_filename):
            raise ValidationError(
                "El adjunto requiere contenido y nombre de archivo.",
                fields=["attachmentBase64", "attachmentFilename"],
            )
        attachments.append(
            EmailAttachment(
                filename=payload.attachment_filename,
                content=decode_base64_payload(payload.attachment_base64),
            )
        )

    message_id = send_postmark_email(
        to=payload.to,
        subject=payload.subject,
        html_body=payload.body,
        attachments=attachments,
    )

    record_audit(db, "email_sent", user.id, to=payload.to, message_id=message_id)
    logger.bind(user_id=user.id, message_id=message_id).info("send_email_done")
    return {"message": "Correo enviado exitosamente.", "messageId": message_id}


@router.post("/send-document")
def send_document(
    user: User = Depends(get_current_user),
    payload: SendDocumentPayload = Depends(json_payload(SendDocumentPayload)),
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
):
    request = DeliveryRequest(
        document_type=payload.document_type,
        document_id=payload.document_id,
        recipient_email=payload.to,
        recipient_phone=payload.phone,
        message=payload.message,
        subject=payload.subject,
        send_whatsapp=payload.send_whatsapp,
    )
    result = orchestrator.deliver(request, user_id=user.id, user_email=user.email)
    return result.to_payload()
