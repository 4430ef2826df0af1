"""
Error taxonomy shared by the gate service and the terminal client.

Every error is an `HTTPException`, so service functions raise them the same
way they would raise a plain `HTTPException` and FastAPI renders them as
`{"detail": {"code": ..., "message": ...}}`. The client rebuilds the same
classes from responses with `error_from_payload`.
"""
from typing import Any

from fastapi import HTTPException, status


class WeighbridgeError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "ERROR"

    def __init__(self, message: str, *, status_code: int | None = None, **extra: Any) -> None:
        self.message = message
        self.extra = extra
        detail = {"code": self.code, "message": message, **extra}
        super().__init__(status_code=status_code or type(self).status_code, detail=detail)

    def __str__(self) -> str:
        return self.message


class ValidationError(WeighbridgeError):
    """Malformed or out-of-range input. Never retried."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class StageMismatch(WeighbridgeError):
    """A measurement was attempted while the trip sits at another stage."""

    status_code = status.HTTP_409_CONFLICT
    code = "STAGE_MISMATCH"


class InvalidTransition(WeighbridgeError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_TRANSITION"


class ConflictError(WeighbridgeError):
    """Duplicate resource on create."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class NotFoundError(WeighbridgeError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class VehicleRejected(WeighbridgeError):
    status_code = status.HTTP_409_CONFLICT
    code = "VEHICLE_REJECTED"


class RegistrationLegFailed(WeighbridgeError):
    """One leg of a vehicle+driver registration failed; `leg` names which."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "REGISTRATION_LEG_FAILED"

    @property
    def leg(self) -> str | None:
        return self.extra.get("leg")


class AuthExpired(WeighbridgeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_EXPIRED"

    def __init__(self, message: str = "Session expired or invalid", **extra: Any) -> None:
        super().__init__(message, **extra)
        self.headers = {"WWW-Authenticate": "Bearer"}


class PermissionDenied(WeighbridgeError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class StoreError(WeighbridgeError):
    """Unclassified failure reported by the store; carries its detail as-is."""

    code = "STORE_ERROR"


_BY_CODE: dict[str, type[WeighbridgeError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        StageMismatch,
        InvalidTransition,
        ConflictError,
        NotFoundError,
        VehicleRejected,
        RegistrationLegFailed,
        AuthExpired,
        PermissionDenied,
    )
}

_BY_STATUS: dict[int, type[WeighbridgeError]] = {
    status.HTTP_401_UNAUTHORIZED: AuthExpired,
    status.HTTP_403_FORBIDDEN: PermissionDenied,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    status.HTTP_409_CONFLICT: ConflictError,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationError,
}


def error_from_payload(status_code: int, detail: Any) -> WeighbridgeError:
    """Rebuild a typed error from a response status and its `detail` field."""
    if isinstance(detail, dict) and detail.get("code") in _BY_CODE:
        extra = {k: v for k, v in detail.items() if k not in ("code", "message")}
        return _BY_CODE[detail["code"]](str(detail.get("message") or ""), status_code=status_code, **extra)

    if isinstance(detail, list):
        # FastAPI request validation errors
        message = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', []))}: {e.get('msg')}" for e in detail if isinstance(e, dict)
        )
    elif isinstance(detail, dict):
        message = str(detail.get("message") or detail)
    else:
        message = str(detail or "")

    cls = _BY_STATUS.get(status_code, StoreError)
    return cls(message or f"HTTP {status_code}", status_code=status_code)
