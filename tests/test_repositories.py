from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from procarni.core.errors import FetchError, NotFoundError
from procarni.domain.views import NA
from procarni.models import Material, SupplierMaterial
from procarni.repositories import documents, supplier_materials
from procarni.repositories.price_history import material_price_history, supplier_price_history


class BrokenSession:
    """Session whose every read fails the way a dropped backend does."""

    def __init__(self, message="database is locked"):
        self.message = message

    def query(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception(self.message))

    def get(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception(self.message))


def test_supplier_history_is_newest_first(seeded):
    rows = supplier_price_history(seeded, "S1")

    assert [r.id for r in rows] == ["E3000000-0003", "E2000000-0002", "E1000000-0001"]


def test_supplier_history_keeps_entries_with_missing_material(seeded):
    rows = supplier_price_history(seeded, "S1")
    orphan = next(r for r in rows if r.id == "E3000000-0003")

    assert orphan.material_name == NA
    assert orphan.material_code == NA
    assert orphan.material_unit == NA
    assert orphan.unit_price == Decimal("5.00")


def test_supplier_history_joins_material_and_order(seeded):
    rows = supplier_price_history(seeded, "S1")
    first = next(r for r in rows if r.id == "E1000000-0001")

    assert first.material_name == "Carne Molida"
    assert first.material_code == "MAT-001"
    assert first.material_unit == "kg"
    assert first.po_sequence_number == 7


def test_material_history_keeps_entries_with_missing_supplier(seeded):
    rows = material_price_history(seeded, "M1")

    assert [r.id for r in rows] == ["E1000000-0001", "E4000000-0004"]
    gone = rows[1]
    assert gone.supplier_name == NA
    assert gone.supplier_code == NA
    assert gone.supplier_rif == NA
    assert rows[0].supplier_name == "Acme"


def test_unknown_supplier_has_empty_history(seeded):
    assert supplier_price_history(seeded, "NOPE") == []


def test_backend_error_becomes_fetch_error():
    with pytest.raises(FetchError) as exc_info:
        supplier_price_history(BrokenSession(), "S1")

    assert exc_info.value.code == "fetch_failed"
    assert exc_info.value.context["entity_id"] == "S1"
    assert exc_info.value.context["operation"] == "supplier_price_history"


def test_backend_timeout_has_its_own_code():
    with pytest.raises(FetchError) as exc_info:
        material_price_history(BrokenSession("connection timeout expired"), "M1")

    assert exc_info.value.code == "fetch_timeout"


def test_suppliers_by_material_carry_specification(seeded):
    rows = supplier_materials.suppliers_by_material(seeded, "M1")

    by_id = {r.supplier_id: r for r in rows}
    assert set(by_id) == {"S1", "S2"}
    assert by_id["S1"].specification == "Fresca, 80/20"
    assert by_id["S2"].specification == "Congelada"


def test_supplier_material_search_is_case_insensitive(seeded):
    by_name = supplier_materials.search_materials_by_supplier(seeded, "S1", "pollo")
    by_code = supplier_materials.search_materials_by_supplier(seeded, "S1", "mat-001")

    assert [m.material_id for m in by_name] == ["M2"]
    assert [m.material_id for m in by_code] == ["M1"]


def test_supplier_material_search_without_query_returns_all(seeded):
    rows = supplier_materials.search_materials_by_supplier(seeded, "S1")

    assert {m.material_id for m in rows} == {"M1", "M2"}


def test_supplier_material_search_is_capped(seeded):
    for i in range(15):
        seeded.add(Material(id=f"X{i:02d}", code=f"X-{i:02d}", name=f"Insumo {i:02d}"))
        seeded.add(SupplierMaterial(supplier_id="S2", material_id=f"X{i:02d}"))
    seeded.commit()

    rows = supplier_materials.search_materials_by_supplier(seeded, "S2", "insumo")

    assert len(rows) == supplier_materials.SEARCH_PAGE_SIZE


def test_catalog_search(seeded):
    rows = supplier_materials.search_materials(seeded, "BANDEJA")

    assert [m.material_id for m in rows] == ["M3"]
    assert rows[0].is_exempt is True


def test_purchase_order_view(seeded):
    order = documents.get_purchase_order(seeded, "PO1-0000-aaaa")

    assert order.sequence_number == 7
    assert order.supplier.name == "Acme"
    assert order.company.name == "Procarni C.A."
    assert [i.material_name for i in order.items] == ["Carne Molida", "Bandeja Anime"]
    assert order.items[1].is_exempt is True


def test_quote_request_view(seeded):
    request = documents.get_quote_request(seeded, "QR1abcdef-1234")

    assert request.currency == "VES"
    assert request.items[0].description == "Entrega semanal"


def test_missing_root_record_is_not_found(seeded):
    with pytest.raises(NotFoundError):
        documents.get_purchase_order(seeded, "missing")
    with pytest.raises(NotFoundError):
        documents.get_quote_request(seeded, "missing")
    with pytest.raises(NotFoundError):
        documents.get_supplier(seeded, "missing")


def test_catalog_search_treats_wildcards_literally(seeded):
    assert supplier_materials.search_materials(seeded, "%") == []
    assert supplier_materials.search_materials(seeded, "_") == []

    seeded.add(Material(id="M9", code="SAL_100", name="Sal 100%", unit="kg"))
    seeded.commit()

    assert [m.material_id for m in supplier_materials.search_materials(seeded, "0%")] == ["M9"]
    assert [m.material_id for m in supplier_materials.search_materials(seeded, "l_1")] == ["M9"]
    assert [m.material_id for m in supplier_materials.search_materials(seeded, "%")] == ["M9"]
