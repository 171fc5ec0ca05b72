# procarni/routers/payloads.py
"""
Request bodies for the /functions/v1 endpoints.

Bodies are parsed by a dependency that itself depends on the bearer check,
so an unauthenticated call is rejected before its body is looked at.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional, Type, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from procarni.auth.deps import get_current_user
from procarni.core.errors import ValidationError, missing_fields_error
from procarni.models.user import User

P = TypeVar("P", bound=BaseModel)

_MISSING_TYPES = {"missing", "string_too_short"}


class Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class SupplierHistoryPayload(Payload):
    supplier_id: str = Field(alias="supplierId", min_length=1)
    supplier_name: Optional[str] = Field(None, alias="supplierName")


class MaterialHistoryPayload(Payload):
    material_id: str = Field(alias="materialId", min_length=1)
    base_currency: Literal["USD", "VES"] = Field(alias="baseCurrency")
    material_name: Optional[str] = Field(None, alias="materialName")


class PurchaseOrderPayload(Payload):
    order_id: str = Field(alias="orderId", min_length=1)


class QuoteRequestPayload(Payload):
    request_id: str = Field(alias="requestId", min_length=1)


class UploadPdfPayload(Payload):
    base64_data: str = Field(alias="base64Data", min_length=1)
    filename: str = Field(min_length=1)


class SendEmailPayload(Payload):
    to: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)
    attachment_base64: Optional[str] = Field(None, alias="attachmentBase64")
    attachment_filename: Optional[str] = Field(None, alias="attachmentFilename")


class SendDocumentPayload(Payload):
    document_type: Literal["quote_request", "purchase_order", "price_history"] = Field(alias="documentType")
    document_id: str = Field(alias="documentId", min_length=1)
    to: str = Field(min_length=1)
    phone: Optional[str] = None
    message: Optional[str] = None
    subject: Optional[str] = None
    send_whatsapp: bool = Field(True, alias="sendWhatsapp")


class ComparedMaterial(Payload):
    name: str = Field(min_length=1)
    code: Optional[str] = None


class ComparedQuotePayload(Payload):
    supplier_name: Optional[str] = Field(None, alias="supplierName")
    unit_price: Decimal = Field(alias="unitPrice")
    currency: str = Field(min_length=1)
    exchange_rate: Optional[Decimal] = Field(None, alias="exchangeRate")
    converted_price: Optional[Decimal] = Field(None, alias="convertedPrice")
    is_valid: bool = Field(True, alias="isValid")
    error: Optional[str] = None


class MaterialComparisonPayload(Payload):
    material: ComparedMaterial
    results: list[ComparedQuotePayload] = Field(default_factory=list)
    best_price: Optional[Decimal] = Field(None, alias="bestPrice")


class QuoteComparisonPayload(Payload):
    comparison_results: list[MaterialComparisonPayload] = Field(alias="comparisonResults", min_length=1)
    base_currency: Literal["USD", "VES"] = Field(alias="baseCurrency")
    global_exchange_rate: Optional[Decimal] = Field(None, alias="globalExchangeRate")
    is_single_material: bool = Field(False, alias="isSingleMaterial")


def _field_name(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) if loc else "body"


def to_validation_error(exc: PydanticValidationError) -> ValidationError:
    errors = exc.errors()
    missing = [
        _field_name(e["loc"])
        for e in errors
        if e["type"] in _MISSING_TYPES or e.get("input", "") is None
    ]
    if missing:
        return missing_fields_error(missing)

    fields = [_field_name(e["loc"]) for e in errors]
    detail = "; ".join(f"{_field_name(e['loc'])}: {e['msg']}" for e in errors)
    return ValidationError(f"Datos inválidos: {detail}", fields=fields)


def json_payload(model: Type[P]):
    """Dependency factory: authenticate first, then parse and validate the JSON body."""

    async def _parse(request: Request, _user: User = Depends(get_current_user)) -> P:
        try:
            data = await request.json()
        except ValueError as exc:
            raise ValidationError("El cuerpo de la solicitud no es JSON válido.") from exc

        if not isinstance(data, dict):
            raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON.")

        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise to_validation_error(exc) from exc

    return _parse
