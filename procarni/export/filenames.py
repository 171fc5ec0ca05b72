import re
from datetime import datetime
from typing import Optional

from procarni.export.formatting import short_id, today_stamp

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def safe_label(label: Optional[str], fallback: str) -> str:
    """
    Strip everything except ASCII letters, digits and whitespace, then collapse
    whitespace runs into one underscore. 'Acme, C.A.' -> 'Acme_CA'.
    """
    cleaned = _NON_ALNUM.sub("", label or "").strip()
    cleaned = _WHITESPACE.sub("_", cleaned)
    if cleaned:
        return cleaned

    cleaned = _WHITESPACE.sub("_", _NON_ALNUM.sub("", fallback).strip())
    return cleaned or "documento"


def safe_filename(filename: str) -> str:
    """Keep the extension, sanitize the stem (used for storage keys)."""
    stem, dot, ext = filename.rpartition(".")
    if not dot:
        stem, ext = filename, ""
    clean_stem = safe_label(stem.replace("_", " "), "archivo")
    clean_ext = re.sub(r"[^a-zA-Z0-9]", "", ext).lower()
    return f"{clean_stem}.{clean_ext}" if clean_ext else clean_stem


def supplier_xlsx_filename(label: Optional[str]) -> str:
    return f"Historial_Precios_Proveedor_{safe_label(label, 'Proveedor')}.xlsx"


def material_xlsx_filename(label: Optional[str], base_currency: str) -> str:
    return f"Historial_Precios_{safe_label(label, 'Material')}_{base_currency}.xlsx"


def supplier_pdf_filename(label: Optional[str], now: Optional[datetime] = None) -> str:
    return f"Historial_Precios_Proveedor_{safe_label(label, 'Proveedor')}_USD_{today_stamp(now)}.pdf"


def material_pdf_filename(label: Optional[str], base_currency: str, now: Optional[datetime] = None) -> str:
    return f"Historial_Precios_{safe_label(label, 'Material')}_{base_currency}_{today_stamp(now)}.pdf"


def purchase_order_filename(order_number: str) -> str:
    return f"Orden_Compra_{order_number}.pdf"


def quote_request_filename(request_id: str) -> str:
    return f"solicitud_cotizacion_{short_id(request_id)}.pdf"


def quote_comparison_filename(material_code: Optional[str], now: Optional[datetime] = None) -> str:
    """Single-material reports carry the material code, the rest are 'General'."""
    label = safe_label(material_code, "General") if material_code else "General"
    return f"Comparacion_SC_{label}_{today_stamp(now)}.pdf"
