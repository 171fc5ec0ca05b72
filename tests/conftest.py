import os

os.environ.setdefault("JWT_SECRET", "test-secret-for-procarni")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from procarni.auth.jwt import create_access_token
from procarni.db import Base, get_db
from procarni.export import pdf_export
from procarni.main import app
from procarni.models import (
    Company,
    Material,
    PriceHistoryEntry,
    PurchaseOrder,
    PurchaseOrderItem,
    QuoteRequest,
    QuoteRequestItem,
    Supplier,
    SupplierMaterial,
    User,
)
from procarni.services.publisher import PublisherCredential, get_publisher_credential

FAKE_PDF = b"%PDF-1.4\n% procarni test document\n%%EOF"


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# --- DB: one in-memory SQLite database per test, shared by all sessions ---
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- storage: local publisher rooted in tmp_path ---
@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / "storage"


@pytest.fixture
def publisher_credential(storage_root):
    return PublisherCredential(
        backend="local",
        local_root=str(storage_root),
        public_base_url="https://files.procarni.test",
    )


def stored_files(root):
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file())


# --- seed data ---
@pytest.fixture
def user(db_session):
    u = User(id="user-1", email="compras@procarni.test", is_active=True)
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def auth_headers(user):
    token = create_access_token(user_id=user.id, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seeded(db_session, user):
    """
    Supplier S1 (Acme) with three price entries, one of them pointing at a
    material that no longer exists; material M1 also priced by a supplier
    that no longer exists.
    """
    db_session.add_all(
        [
            Company(id="C1", name="Procarni C.A.", rif="J-12345678-9", email="info@procarni.test"),
            Supplier(
                id="S1",
                code="P-001",
                rif="J-00000001-0",
                name="Acme",
                email="ventas@acme.test",
                phone="0414-123.45.67",
                payment_terms="Contado",
            ),
            Supplier(id="S2", code="P-002", rif="J-00000002-0", name="Distribuidora Lara"),
            Material(id="M1", code="MAT-001", name="Carne Molida", category="Cárnicos", unit="kg"),
            Material(id="M2", code="MAT-002", name="Pollo Entero", category="Aves", unit="kg"),
            Material(id="M3", code="EMB-010", name="Bandeja Anime", category="Empaques", unit="und", is_exempt=True),
        ]
    )
    db_session.add_all(
        [
            SupplierMaterial(supplier_id="S1", material_id="M1", specification="Fresca, 80/20"),
            SupplierMaterial(supplier_id="S1", material_id="M2", specification=None),
            SupplierMaterial(supplier_id="S2", material_id="M1", specification="Congelada"),
        ]
    )
    db_session.add(
        PurchaseOrder(
            id="PO1-0000-aaaa",
            sequence_number=7,
            supplier_id="S1",
            company_id="C1",
            currency="USD",
            status="Approved",
            delivery_date=date(2024, 8, 20),
            payment_terms="Crédito",
            credit_days=15,
            created_by="compras@procarni.test",
            created_at=_utc(2024, 8, 15, 12, 0, 0),
        )
    )
    db_session.add_all(
        [
            PurchaseOrderItem(
                order_id="PO1-0000-aaaa", position=0, material_name="Carne Molida",
                quantity=Decimal("2"), unit="kg", unit_price=Decimal("10.00"), tax_rate=Decimal("0.16"),
            ),
            PurchaseOrderItem(
                order_id="PO1-0000-aaaa", position=1, material_name="Bandeja Anime",
                quantity=Decimal("1"), unit="und", unit_price=Decimal("5.00"), is_exempt=True,
            ),
        ]
    )
    db_session.add(
        QuoteRequest(
            id="QR1abcdef-1234",
            supplier_id="S1",
            company_id="C1",
            currency="VES",
            exchange_rate=Decimal("36.50"),
            status="Sent",
            created_at=_utc(2024, 8, 10, 9, 0, 0),
        )
    )
    db_session.add(
        QuoteRequestItem(
            request_id="QR1abcdef-1234", position=0, material_name="Carne Molida",
            quantity=Decimal("50"), unit="kg", description="Entrega semanal",
        )
    )
    db_session.add_all(
        [
            PriceHistoryEntry(
                id="E1000000-0001", supplier_id="S1", material_id="M1",
                unit_price=Decimal("10.00"), currency="USD", exchange_rate=Decimal("36.50"),
                recorded_at=_utc(2024, 8, 1, 12, 0, 0), purchase_order_id="PO1-0000-aaaa",
            ),
            PriceHistoryEntry(
                id="E2000000-0002", supplier_id="S1", material_id="M2",
                unit_price=Decimal("365.00"), currency="VES", exchange_rate=Decimal("36.50"),
                recorded_at=_utc(2024, 8, 2, 12, 0, 0),
            ),
            PriceHistoryEntry(
                id="E3000000-0003", supplier_id="S1", material_id="GONE-MATERIAL",
                unit_price=Decimal("5.00"), currency="USD", exchange_rate=None,
                recorded_at=_utc(2024, 8, 3, 12, 0, 0),
            ),
            PriceHistoryEntry(
                id="E4000000-0004", supplier_id="GONE-SUPPLIER", material_id="M1",
                unit_price=Decimal("400.00"), currency="VES", exchange_rate=Decimal("40.00"),
                recorded_at=_utc(2024, 7, 1, 12, 0, 0),
            ),
        ]
    )
    db_session.commit()
    return db_session


# --- HTTP client ---
@pytest.fixture
def client(session_factory, publisher_credential):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_publisher_credential] = lambda: publisher_credential
    # no context manager: startup would create tables on the configured engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_pdf(monkeypatch):
    """Skip weasyprint; the rendered HTML is kept for assertions."""
    rendered = []

    def _html_to_pdf(html: str) -> bytes:
        rendered.append(html)
        return FAKE_PDF

    monkeypatch.setattr(pdf_export, "html_to_pdf", _html_to_pdf)
    return rendered


class FakePostmarkResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"MessageID": "pm-0001", "ErrorCode": 0}
        self.text = str(self._payload)

    def json(self):
        return self._payload


class NotJsonResponse:
    """2xx reply whose body is not JSON (proxy error page)."""

    status_code = 200
    text = "<html>Service Unavailable</html>"

    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


@pytest.fixture
def postmark(monkeypatch):
    """Configured Postmark with requests.post captured."""
    from procarni.core.settings import settings
    from procarni.services import email as email_service

    monkeypatch.setattr(settings, "POSTMARK_SERVER_TOKEN", "pm-test-token")
    monkeypatch.setattr(settings, "POSTMARK_FROM", "compras@procarni.test")
    monkeypatch.setattr(settings, "MAIL_DRY_RUN", False)

    calls = []
    state = {"response": FakePostmarkResponse()}

    def _post(url, headers=None, data=None, timeout=None):
        calls.append({"url": url, "headers": headers, "data": data, "timeout": timeout})
        result = state["response"]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(email_service.requests, "post", _post)
    return {"calls": calls, "state": state}
