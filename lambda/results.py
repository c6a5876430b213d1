"""Operation outcomes and the error kinds they carry.

Every repository, aggregator and router call returns an ``OpResult``. The
serialized form keeps the ``{success, data|error, ...}`` envelope that clients
already depend on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

VALIDATION_ERROR = "ValidationError"
NOT_FOUND = "NotFoundError"
CONFLICT = "ConflictError"
STORE_ERROR = "StoreError"
ROUTE_NOT_FOUND = "RouteNotFound"
METHOD_NOT_ALLOWED = "MethodNotAllowed"
INTERNAL_ERROR = "InternalError"
INTERNAL_ERROR_MESSAGE = "Internal server error"

HTTP_STATUS_BY_KIND = {
    VALIDATION_ERROR: 400,
    NOT_FOUND: 404,
    ROUTE_NOT_FOUND: 404,
    METHOD_NOT_ALLOWED: 405,
    CONFLICT: 409,
    STORE_ERROR: 502,
    INTERNAL_ERROR: 500,
}


class InternsError(Exception):
    kind = INTERNAL_ERROR


class TaskValidationError(InternsError):
    kind = VALIDATION_ERROR

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class NotFoundError(InternsError):
    kind = NOT_FOUND


class ConflictError(InternsError):
    kind = CONFLICT


class StoreError(InternsError):
    kind = STORE_ERROR


@dataclass(frozen=True)
class OpResult:
    ok: bool
    payload: dict[str, Any] = field(default_factory=dict)
    error_kind: str = ""
    error: str = ""
    # Server-side only; never part of the envelope.
    detail: str = field(default="", compare=False)

    @classmethod
    def success(cls, **payload: Any) -> OpResult:
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, kind: str, message: str, detail: str = "") -> OpResult:
        return cls(ok=False, error_kind=kind, error=message, detail=detail)

    @classmethod
    def from_exception(cls, exc: Exception) -> OpResult:
        kind = getattr(exc, "kind", INTERNAL_ERROR)
        return cls.failure(kind, str(exc) or type(exc).__name__)

    def status_code(self, success_code: int = 200) -> int:
        if self.ok:
            return success_code
        return HTTP_STATUS_BY_KIND.get(self.error_kind, 500)

    def to_envelope(self) -> dict[str, Any]:
        if self.ok:
            return {"success": True, **self.payload}
        return {"success": False, "error": self.error, "errorCode": self.error_kind}
