"""Denormalized rows produced by the join layer and consumed by the exporters."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

NA = "N/A"


@dataclass(frozen=True)
class PriceHistoryRow:
    id: str
    supplier_id: str
    material_id: str
    unit_price: Decimal
    currency: str
    exchange_rate: Optional[Decimal]
    recorded_at: datetime
    purchase_order_id: Optional[str]

    # material side (supplier reports)
    material_name: str = NA
    material_code: str = NA
    material_unit: str = NA

    # supplier side (material reports)
    supplier_name: str = NA
    supplier_code: str = NA
    supplier_rif: str = NA

    # purchase order, when the price came from one
    po_sequence_number: Optional[int] = None
    po_created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SupplierForMaterial:
    supplier_id: str
    name: str
    code: str
    rif: str
    email: Optional[str]
    phone: Optional[str]
    specification: Optional[str]


@dataclass(frozen=True)
class MaterialForSupplier:
    material_id: str
    name: str
    code: str
    category: str
    unit: str
    is_exempt: bool
    specification: Optional[str]


@dataclass(frozen=True)
class PartySnapshot:
    """Supplier or company fields printed on a document header."""

    name: str = NA
    rif: str = NA
    code: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    material_name: str
    quantity: Decimal
    unit: Optional[str]
    unit_price: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None
    is_exempt: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class PurchaseOrderView:
    id: str
    sequence_number: Optional[int]
    created_at: datetime
    currency: str
    exchange_rate: Optional[Decimal]
    delivery_date: Optional[date]
    payment_terms: Optional[str]
    custom_payment_terms: Optional[str]
    credit_days: Optional[int]
    observations: Optional[str]
    created_by: Optional[str]
    supplier: PartySnapshot
    company: PartySnapshot
    items: list[LineItem]


@dataclass(frozen=True)
class QuoteRequestView:
    id: str
    created_at: datetime
    currency: str
    exchange_rate: Optional[Decimal]
    status: str
    created_by: Optional[str]
    supplier: PartySnapshot
    company: PartySnapshot
    items: list[LineItem]
