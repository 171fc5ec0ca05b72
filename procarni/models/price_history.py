# procarni/models/price_history.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from procarni.db import Base
from procarni.models._common import new_id, utcnow


class PriceHistoryEntry(Base):
    """Append-only price observation for one (supplier, material) pair."""

    __tablename__ = "price_history"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    supplier_id: Mapped[str] = mapped_column(ForeignKey("suppliers.id"), index=True)
    material_id: Mapped[str] = mapped_column(ForeignKey("materials.id"), index=True)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 4))
    currency: Mapped[str] = mapped_column(String(3))
    exchange_rate: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    purchase_order_id: Mapped[str | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )
