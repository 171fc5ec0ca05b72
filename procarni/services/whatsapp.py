import re
from typing import Optional
from urllib.parse import quote

from procarni.core.settings import settings

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: Optional[str], country_code: Optional[str] = None) -> Optional[str]:
    """
    Digits only, with the country code in front.
    "414-123.45.67" -> "584141234567". Returns None when nothing is left.
    """
    code = country_code if country_code is not None else settings.WHATSAPP_COUNTRY_CODE
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        return None
    if code and not digits.startswith(code):
        digits = code + digits
    return digits


def document_message(document_label: str, document_number: str, company_name: str, public_url: str) -> str:
    return (
        f"Hola, te he enviado la {document_label} #{document_number} de {company_name}. "
        f"Puedes descargarla aquí: {public_url}"
    )


def build_whatsapp_link(phone: str, message: str, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.WHATSAPP_BASE_URL).rstrip("/")
    return f"{base}/{phone}?text={quote(message, safe='')}"
