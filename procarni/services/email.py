# procarni/services/email.py
from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from procarni.core.errors import DeliveryError
from procarni.core.logging_config import logger
from procarni.core.settings import settings

POSTMARK_SEND_URL = "https://api.postmarkapp.com/email"


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    mime_type: str = "application/pdf"

    def to_postmark(self) -> Dict[str, str]:
        return {
            "Name": self.filename,
            "Content": base64.b64encode(self.content).decode("ascii"),
            "ContentType": self.mime_type,
        }


def send_postmark_email(
    *,
    to: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None,
    attachments: Optional[List[EmailAttachment]] = None,
    message_stream: str = "outbound",  # Postmark default stream
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    """
    One Postmark call, attachments included.
    Returns the Postmark MessageID. Raises DeliveryError on failure.
    """
    log = logger.bind(to=to, subject=subject, attachments=len(attachments or []))

    if settings.MAIL_DRY_RUN:
        message_id = f"dry-run-{uuid.uuid4()}"
        log.info("email_dry_run", message_id=message_id)
        return message_id

    if not settings.POSTMARK_SERVER_TOKEN:
        raise DeliveryError("Correo no configurado: falta POSTMARK_SERVER_TOKEN.", code="mail_not_configured")
    if not settings.POSTMARK_FROM:
        raise DeliveryError("Correo no configurado: falta POSTMARK_FROM.", code="mail_not_configured")

    payload: Dict[str, Any] = {
        "From": settings.POSTMARK_FROM,
        "To": to,
        "Subject": subject,
        "HtmlBody": html_body,
        "MessageStream": message_stream,
    }
    if settings.POSTMARK_REPLY_TO:
        payload["ReplyTo"] = settings.POSTMARK_REPLY_TO
    if text_body:
        payload["TextBody"] = text_body
    if attachments:
        payload["Attachments"] = [a.to_postmark() for a in attachments]
    if metadata:
        payload["Metadata"] = metadata

    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-Postmark-Server-Token": settings.POSTMARK_SERVER_TOKEN,
    }

    try:
        r = requests.post(
            POSTMARK_SEND_URL,
            headers=headers,
            data=json.dumps(payload),
            timeout=settings.MAIL_TIMEOUT_SECONDS,
        )
    except requests.Timeout as e:
        log.error("email_timeout", error=str(e))
        raise DeliveryError("Tiempo de espera agotado al enviar el correo.", code="mail_timeout") from e
    except requests.RequestException as e:
        log.error("email_network_error", error=f"{type(e).__name__}:{e}")
        raise DeliveryError("No se pudo contactar el servicio de correo.") from e

    if r.status_code >= 300:
        # Postmark returns JSON with Message/ErrorCode
        try:
            data = r.json()
        except ValueError:
            data = {"raw": r.text}
        log.error("email_send_failed", status=r.status_code, response=data)
        detail = data.get("Message") if isinstance(data, dict) else None
        raise DeliveryError(f"Error al enviar el correo: {detail or r.status_code}")

    try:
        data = r.json()
    except ValueError as e:
        log.error("email_send_failed", reason="invalid_json", status=r.status_code, response=r.text[:500])
        raise DeliveryError("Error al enviar el correo: respuesta inválida del servicio.") from e
    if not isinstance(data, dict):
        data = {}
    message_id = str(data.get("MessageID") or "")
    if not message_id:
        log.error("email_send_failed", reason="no_message_id", response=data)
        raise DeliveryError("Error al enviar el correo: respuesta sin identificador.")

    log.info("email_sent", message_id=message_id)
    return message_id
