"""
Error taxonomy shared by services and routes.
Each error carries the HTTP status it is surfaced with; main.py registers
a single handler that renders {"error", "code"[, "hint"]}.
"""
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", *, hint: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.hint = hint

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.hint:
            payload["hint"] = self.hint
        return payload


class InvalidCredential(ServiceError):
    status_code = 401
    code = "invalid_credential"


class InsufficientCredits(ServiceError):
    status_code = 402
    code = "insufficient_credits"


class ResourceNotFound(ServiceError):
    status_code = 404
    code = "not_found"


class InvalidRequest(ServiceError):
    status_code = 400
    code = "invalid_request"


class StoreUnavailable(ServiceError):
    """Record Store or Blob Store failure; no partial state is assumed consistent."""

    status_code = 500
    code = "store_unavailable"


class PaymentProviderError(ServiceError):
    status_code = 502
    code = "payment_provider_error"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, InvalidCredential) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
