# procarni/services/delivery.py
"""
Multi-channel delivery of a generated document.

Email is the primary channel: it is always attempted and decides the
outcome. WhatsApp is optional and only offered when a phone number is
present; its failures are reported as warnings next to a successful email.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from procarni.core.errors import DeliveryError, ProcurementError, PublishError
from procarni.core.logging_config import logger
from procarni.observability.metrics import deliveries_total
from procarni.services.audit import record_audit
from procarni.services.email import EmailAttachment, send_postmark_email
from procarni.services.publisher import Publisher
from procarni.services.reports import DocumentBundle, build_document
from procarni.services.whatsapp import build_whatsapp_link, document_message, normalize_phone
from procarni.templates import render_template

DOCUMENT_TYPES = ("quote_request", "purchase_order", "price_history")


class DeliveryState(str, enum.Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    DeliveryState.IDLE: {DeliveryState.IN_PROGRESS},
    DeliveryState.IN_PROGRESS: {DeliveryState.SUCCEEDED, DeliveryState.FAILED},
    DeliveryState.SUCCEEDED: set(),
    DeliveryState.FAILED: set(),
}


class InvalidTransition(RuntimeError):
    pass


class DeliveryAction:
    """One send attempt. Reaches exactly one terminal state."""

    def __init__(self) -> None:
        self.state = DeliveryState.IDLE
        self.error: Optional[str] = None

    def _move(self, target: DeliveryState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value}")
        self.state = target

    def start(self) -> None:
        self._move(DeliveryState.IN_PROGRESS)

    def succeed(self) -> None:
        self._move(DeliveryState.SUCCEEDED)

    def fail(self, error: str) -> None:
        self._move(DeliveryState.FAILED)
        self.error = error

    @property
    def done(self) -> bool:
        return self.state in (DeliveryState.SUCCEEDED, DeliveryState.FAILED)


@dataclass(frozen=True)
class DeliveryRequest:
    document_type: str
    document_id: str
    recipient_email: str
    recipient_phone: Optional[str] = None
    message: Optional[str] = None
    subject: Optional[str] = None
    send_whatsapp: bool = True


@dataclass
class DeliveryResult:
    status: DeliveryState
    channels: List[str] = field(default_factory=list)
    email_message_id: Optional[str] = None
    whatsapp_url: Optional[str] = None
    public_url: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "status": self.status.value,
            "channels": self.channels,
            "emailMessageId": self.email_message_id,
            "whatsappUrl": self.whatsapp_url,
            "publicUrl": self.public_url,
            "warnings": self.warnings,
        }


class DeliveryOrchestrator:
    def __init__(self, db: Session, publisher: Publisher):
        self.db = db
        self.publisher = publisher

    def deliver(self, request: DeliveryRequest, user_id: str, user_email: str) -> DeliveryResult:
        action = DeliveryAction()
        action.start()
        log = logger.bind(
            document_type=request.document_type,
            document_id=request.document_id,
            user_id=user_id,
        )

        try:
            bundle = build_document(self.db, request.document_type, request.document_id, user_email)
            message_id = self._send_email(request, bundle)
        except ProcurementError as exc:
            action.fail(exc.message)
            log.warning("delivery_failed", code=exc.code, error=exc.message)
            raise
        except Exception as exc:
            action.fail(str(exc))
            log.exception("delivery_failed", error=str(exc))
            raise

        result = DeliveryResult(status=action.state, channels=["email"], email_message_id=message_id)

        phone = normalize_phone(request.recipient_phone) if request.recipient_phone else None
        if request.send_whatsapp and request.recipient_phone and not phone:
            result.warnings.append("Número de teléfono inválido; no se generó el enlace de WhatsApp.")
        elif request.send_whatsapp and phone:
            self._offer_whatsapp(bundle, phone, user_id, request, result)

        action.succeed()
        result.status = action.state
        log.info("delivery_succeeded", channels=result.channels, warnings=len(result.warnings))

        record_audit(
            self.db,
            "document_sent",
            user_id,
            document_type=request.document_type,
            document_id=request.document_id,
            to=request.recipient_email,
            channels=result.channels,
            email_message_id=message_id,
        )
        return result

    def _send_email(self, request: DeliveryRequest, bundle: DocumentBundle) -> str:
        html = render_template(
            "email/document.html",
            {
                "message": request.message,
                "document_label": bundle.label,
                "document_number": bundle.number,
                "company_name": bundle.company_name,
                "public_url": None,
            },
        )
        subject = request.subject or f"{bundle.label} #{bundle.number} - {bundle.company_name}"
        try:
            message_id = send_postmark_email(
                to=request.recipient_email,
                subject=subject,
                html_body=html,
                attachments=[
                    EmailAttachment(
                        filename=bundle.artifact.filename,
                        content=bundle.artifact.content,
                        mime_type=bundle.artifact.mime_type,
                    )
                ],
                metadata={"document_type": request.document_type, "document_id": request.document_id},
            )
        except DeliveryError:
            deliveries_total.labels(channel="email", result="error").inc()
            raise
        deliveries_total.labels(channel="email", result="success").inc()
        return message_id

    def _offer_whatsapp(
        self,
        bundle: DocumentBundle,
        phone: str,
        owner_id: str,
        request: DeliveryRequest,
        result: DeliveryResult,
    ) -> None:
        try:
            published = self.publisher.publish(bundle.artifact, owner_id, request.document_type)
        except PublishError as exc:
            deliveries_total.labels(channel="whatsapp", result="error").inc()
            logger.bind(document_id=request.document_id).warning("whatsapp_publish_failed", error=exc.message)
            result.warnings.append(f"WhatsApp no disponible: {exc.message}")
            return

        text = document_message(bundle.label, bundle.number, bundle.company_name, published.public_url)
        result.whatsapp_url = build_whatsapp_link(phone, text)
        result.public_url = published.public_url
        result.channels.append("whatsapp")
        deliveries_total.labels(channel="whatsapp", result="success").inc()
