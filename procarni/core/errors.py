# procarni/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class ProcurementError(Exception):
    """
    Base for every failure the pipeline reports to a caller.

    `message` is the human (Spanish) text shown to the user, `code` is the
    machine-readable identifier, `context` carries entity ids / operation
    names for logging.
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context: Dict[str, Any] = context

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class AuthorizationError(ProcurementError):
    status_code = 401
    code = "unauthorized"


class ValidationError(ProcurementError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, *, fields: Sequence[str] = (), **context: Any) -> None:
        super().__init__(message, **context)
        self.fields = list(fields)

    def to_payload(self) -> Dict[str, Any]:
        body = super().to_payload()
        if self.fields:
            body["fields"] = self.fields
        return body


class NotFoundError(ProcurementError):
    status_code = 404
    code = "not_found"


class FetchError(ProcurementError):
    code = "fetch_failed"


class GenerationError(ProcurementError):
    code = "generation_failed"


class PublishError(ProcurementError):
    code = "publish_failed"


class DeliveryError(ProcurementError):
    code = "delivery_failed"


def missing_fields_error(fields: Sequence[str]) -> ValidationError:
    names = ", ".join(fields)
    return ValidationError(f"Campos requeridos faltantes: {names}.", fields=fields)
