"""
Uniform return values for the booking services.

Services never raise across their boundary: callers branch on
``ServiceResult.success`` and, on failure, on ``ServiceResult.code``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    # validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_DATES = "INVALID_DATES"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_RATING = "INVALID_RATING"
    PHONE_MISSING = "PHONE_MISSING"
    PHONE_UNVERIFIED = "PHONE_UNVERIFIED"
    LICENSE_MISSING = "LICENSE_MISSING"
    LICENSE_EXPIRED = "LICENSE_EXPIRED"
    OWN_CAR = "OWN_CAR"
    # authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    # conflict
    CAR_UNAVAILABLE = "CAR_UNAVAILABLE"
    DATES_UNAVAILABLE = "DATES_UNAVAILABLE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    REVIEW_NOT_ALLOWED = "REVIEW_NOT_ALLOWED"
    ALREADY_REVIEWED = "ALREADY_REVIEWED"
    # lookup
    NOT_FOUND = "NOT_FOUND"
    CAR_NOT_FOUND = "CAR_NOT_FOUND"
    # datastore
    DATASTORE_ERROR = "DATASTORE_ERROR"


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "Datos inválidos.",
    ErrorCode.INVALID_DATES: "La fecha de fin debe ser posterior a la de inicio.",
    ErrorCode.INVALID_STATUS: "Estado de reserva desconocido.",
    ErrorCode.INVALID_RATING: "La calificación debe estar entre 1 y 5.",
    ErrorCode.PHONE_MISSING: "Debes registrar un número de teléfono antes de reservar.",
    ErrorCode.PHONE_UNVERIFIED: "Debes verificar tu número de teléfono antes de reservar.",
    ErrorCode.LICENSE_MISSING: "Debes registrar tu licencia de conducir antes de reservar.",
    ErrorCode.LICENSE_EXPIRED: "Tu licencia de conducir está vencida.",
    ErrorCode.OWN_CAR: "No puedes reservar tu propio vehículo.",
    ErrorCode.NOT_AUTHENTICATED: "Debes iniciar sesión.",
    ErrorCode.FORBIDDEN: "No tienes permiso para modificar esta reserva.",
    ErrorCode.CAR_UNAVAILABLE: "El vehículo no está disponible.",
    ErrorCode.DATES_UNAVAILABLE: "El vehículo no está disponible en esas fechas.",
    ErrorCode.INVALID_TRANSITION: "La reserva no admite ese cambio de estado.",
    ErrorCode.REVIEW_NOT_ALLOWED: "Solo puedes reseñar reservas completadas.",
    ErrorCode.ALREADY_REVIEWED: "Ya reseñaste esta reserva.",
    ErrorCode.NOT_FOUND: "Reserva no encontrada.",
    ErrorCode.CAR_NOT_FOUND: "Vehículo no encontrado.",
    ErrorCode.DATASTORE_ERROR: "No se pudo completar la operación. Intenta de nuevo.",
}


@dataclass(frozen=True)
class ServiceResult:
    success: bool
    data: Any = None
    error: str | None = None
    code: ErrorCode | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: ErrorCode, error: str | None = None) -> "ServiceResult":
        return cls(success=False, error=error or DEFAULT_MESSAGES[code], code=code)

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = self.data
        if self.error is not None:
            out["error"] = self.error
        if self.code is not None:
            out["code"] = self.code.value
        return out
