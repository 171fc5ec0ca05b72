"""Quote comparison tables: one per material, quotes already converted to the base currency."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from procarni.domain.views import NA


@dataclass(frozen=True)
class ComparedQuote:
    supplier_name: str
    unit_price: Decimal
    currency: str
    exchange_rate: Optional[Decimal] = None
    converted_price: Optional[Decimal] = None
    is_valid: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class MaterialComparison:
    material_name: str
    material_code: str = NA
    quotes: list[ComparedQuote] = field(default_factory=list)
    best_price: Optional[Decimal] = None

    @property
    def title(self) -> str:
        return f"{self.material_name} ({self.material_code})"


def best_price(comparison: MaterialComparison) -> Optional[Decimal]:
    """The caller's best price when given, else the lowest valid converted price."""
    if comparison.best_price is not None:
        return comparison.best_price
    prices = [
        q.converted_price
        for q in comparison.quotes
        if q.is_valid and q.converted_price is not None
    ]
    return min(prices) if prices else None


def is_best(quote: ComparedQuote, best: Optional[Decimal]) -> bool:
    return best is not None and quote.is_valid and quote.converted_price == best
