# Models package for the procurement document service

from .user import User
from .catalog import Company, Supplier, Material, SupplierMaterial
from .price_history import PriceHistoryEntry
from .documents import QuoteRequest, QuoteRequestItem, PurchaseOrder, PurchaseOrderItem
from .stored_document import StoredDocument, AuditLogEntry

__all__ = [
    "User",
    "Company",
    "Supplier",
    "Material",
    "SupplierMaterial",
    "PriceHistoryEntry",
    "QuoteRequest",
    "QuoteRequestItem",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "StoredDocument",
    "AuditLogEntry",
]
