import json

import pytest
import requests

from procarni.core.errors import DeliveryError, NotFoundError
from procarni.models import AuditLogEntry, StoredDocument
from procarni.services import delivery as delivery_service
from procarni.services.delivery import (
    DeliveryAction,
    DeliveryOrchestrator,
    DeliveryRequest,
    DeliveryState,
    InvalidTransition,
)
from procarni.services.publisher import Publisher

from tests.conftest import FAKE_PDF, FakePostmarkResponse, NotJsonResponse, stored_files


@pytest.fixture
def orchestrator(seeded, publisher_credential):
    return DeliveryOrchestrator(seeded, Publisher(publisher_credential, seeded))


def _request(**kw):
    base = dict(
        document_type="purchase_order",
        document_id="PO1-0000-aaaa",
        recipient_email="ventas@acme.test",
    )
    base.update(kw)
    return DeliveryRequest(**base)


def _sent(postmark, index=0):
    return json.loads(postmark["calls"][index]["data"])


# --- state machine ---
def test_action_reaches_one_terminal_state():
    action = DeliveryAction()
    assert action.state is DeliveryState.IDLE

    action.start()
    assert action.state is DeliveryState.IN_PROGRESS
    assert not action.done

    action.succeed()
    assert action.state is DeliveryState.SUCCEEDED
    assert action.done

    with pytest.raises(InvalidTransition):
        action.fail("tarde")


def test_action_cannot_skip_in_progress():
    action = DeliveryAction()
    with pytest.raises(InvalidTransition):
        action.succeed()


def test_failed_action_keeps_error():
    action = DeliveryAction()
    action.start()
    action.fail("sin conexión")

    assert action.state is DeliveryState.FAILED
    assert action.error == "sin conexión"
    with pytest.raises(InvalidTransition):
        action.start()


# --- orchestration ---
def test_email_only(orchestrator, postmark, fake_pdf, storage_root):
    result = orchestrator.deliver(_request(), user_id="user-1", user_email="compras@procarni.test")

    assert result.status is DeliveryState.SUCCEEDED
    assert result.channels == ["email"]
    assert result.whatsapp_url is None
    assert result.warnings == []
    assert result.email_message_id == "pm-0001"

    assert len(postmark["calls"]) == 1
    sent = _sent(postmark)
    assert sent["To"] == "ventas@acme.test"
    assert sent["Subject"] == "Orden de Compra #OC-2024-08-007 - Procarni C.A."
    assert sent["Attachments"][0]["Name"] == "Orden_Compra_OC-2024-08-007.pdf"
    assert sent["Attachments"][0]["ContentType"] == "application/pdf"
    # nothing published when WhatsApp is not requested
    assert stored_files(storage_root) == []


def test_email_and_whatsapp(orchestrator, postmark, fake_pdf, storage_root, seeded):
    result = orchestrator.deliver(
        _request(recipient_phone="414-123.45.67", message="Buenos días, adjunto la orden."),
        user_id="user-1",
        user_email="compras@procarni.test",
    )

    assert result.channels == ["email", "whatsapp"]
    assert result.whatsapp_url.startswith("https://wa.me/584141234567?text=Hola%2C")
    assert result.public_url.startswith("https://files.procarni.test/user-1/")
    assert [p.read_bytes() for p in stored_files(storage_root)] == [FAKE_PDF]
    assert seeded.query(StoredDocument).count() == 1
    assert "Buenos días, adjunto la orden." in _sent(postmark)["HtmlBody"]


def test_whatsapp_can_be_turned_off(orchestrator, postmark, fake_pdf, storage_root):
    result = orchestrator.deliver(
        _request(recipient_phone="414-123.45.67", send_whatsapp=False),
        user_id="user-1",
        user_email="compras@procarni.test",
    )

    assert result.channels == ["email"]
    assert stored_files(storage_root) == []


def test_bad_phone_is_a_warning(orchestrator, postmark, fake_pdf):
    result = orchestrator.deliver(
        _request(recipient_phone="sin teléfono"), user_id="user-1", user_email="compras@procarni.test"
    )

    assert result.status is DeliveryState.SUCCEEDED
    assert result.channels == ["email"]
    assert len(result.warnings) == 1


def test_publish_failure_is_a_warning(seeded, publisher_credential, postmark, fake_pdf):
    from procarni.core.errors import PublishError

    class BrokenPublisher(Publisher):
        def publish(self, artifact, owner_id, document_type=None):
            raise PublishError("No se pudo subir el archivo.")

    orchestrator = DeliveryOrchestrator(seeded, BrokenPublisher(publisher_credential, seeded))
    result = orchestrator.deliver(
        _request(recipient_phone="414-123.45.67"), user_id="user-1", user_email="compras@procarni.test"
    )

    assert result.status is DeliveryState.SUCCEEDED
    assert result.channels == ["email"]
    assert result.whatsapp_url is None
    assert result.warnings == ["WhatsApp no disponible: No se pudo subir el archivo."]


def test_email_failure_fails_the_delivery(orchestrator, postmark, fake_pdf, storage_root, seeded):
    postmark["state"]["response"] = FakePostmarkResponse(422, {"ErrorCode": 300, "Message": "Invalid 'To' address"})

    with pytest.raises(DeliveryError) as exc_info:
        orchestrator.deliver(
            _request(recipient_phone="414-123.45.67"), user_id="user-1", user_email="compras@procarni.test"
        )

    assert "Invalid 'To' address" in exc_info.value.message
    assert stored_files(storage_root) == []
    assert seeded.query(AuditLogEntry).filter(AuditLogEntry.action == "document_sent").count() == 0


def test_email_timeout(orchestrator, postmark, fake_pdf):
    postmark["state"]["response"] = requests.Timeout("read timed out")

    with pytest.raises(DeliveryError) as exc_info:
        orchestrator.deliver(_request(), user_id="user-1", user_email="compras@procarni.test")

    assert exc_info.value.code == "mail_timeout"


def test_unknown_document_is_not_found(orchestrator, postmark, fake_pdf):
    with pytest.raises(NotFoundError):
        orchestrator.deliver(_request(document_id="missing"), user_id="user-1", user_email="compras@procarni.test")

    assert postmark["calls"] == []


def test_quote_request_delivery(orchestrator, postmark, fake_pdf):
    result = orchestrator.deliver(
        _request(document_type="quote_request", document_id="QR1abcdef-1234", subject="Cotización semanal"),
        user_id="user-1",
        user_email="compras@procarni.test",
    )

    assert result.status is DeliveryState.SUCCEEDED
    sent = _sent(postmark)
    assert sent["Subject"] == "Cotización semanal"
    assert sent["Attachments"][0]["Name"] == "solicitud_cotizacion_QR1abcde.pdf"


def test_successful_delivery_is_audited(orchestrator, postmark, fake_pdf, seeded):
    orchestrator.deliver(_request(), user_id="user-1", user_email="compras@procarni.test")

    entry = seeded.query(AuditLogEntry).filter(AuditLogEntry.action == "document_sent").one()
    assert entry.user_id == "user-1"
    assert entry.details["document_id"] == "PO1-0000-aaaa"
    assert entry.details["channels"] == ["email"]


def test_dry_run_skips_postmark(orchestrator, postmark, fake_pdf, monkeypatch):
    from procarni.core.settings import settings

    monkeypatch.setattr(settings, "MAIL_DRY_RUN", True)

    result = orchestrator.deliver(_request(), user_id="user-1", user_email="compras@procarni.test")

    assert result.email_message_id.startswith("dry-run-")
    assert postmark["calls"] == []


@pytest.fixture
def actions(monkeypatch):
    """Every DeliveryAction the orchestrator creates."""
    created = []

    class RecordedAction(DeliveryAction):
        def __init__(self):
            super().__init__()
            created.append(self)

    monkeypatch.setattr(delivery_service, "DeliveryAction", RecordedAction)
    return created


def test_unreadable_postmark_reply_is_delivery_error(orchestrator, postmark, fake_pdf, actions):
    postmark["state"]["response"] = NotJsonResponse()

    with pytest.raises(DeliveryError) as exc_info:
        orchestrator.deliver(_request(), user_id="user-1", user_email="compras@procarni.test")

    assert exc_info.value.code == "delivery_failed"
    assert [a.state for a in actions] == [DeliveryState.FAILED]


def test_unexpected_error_still_ends_the_action(orchestrator, fake_pdf, actions, monkeypatch):
    def _exploding_send(**kwargs):
        raise RuntimeError("connection pool closed")

    monkeypatch.setattr(delivery_service, "send_postmark_email", _exploding_send)

    with pytest.raises(RuntimeError):
        orchestrator.deliver(_request(), user_id="user-1", user_email="compras@procarni.test")

    assert [a.state for a in actions] == [DeliveryState.FAILED]
    assert actions[0].error == "connection pool closed"
