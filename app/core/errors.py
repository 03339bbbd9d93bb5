from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base de los errores de dominio que la capa HTTP traduce a respuestas JSON."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AppError, ValueError):
    status_code = 400

    def __init__(self, message: str, errors: list[dict[str, str]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message, {"errors": self.errors} if self.errors else None)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} no existe")


class ConflictError(AppError):
    status_code = 409


class IntegrationError(AppError):
    """Fallo de una integracion externa cuyo error se propaga al llamador."""

    status_code = 502

    def __init__(self, message: str, integration: str, inscripcion_id: int | None = None) -> None:
        self.integration = integration
        self.inscripcion_id = inscripcion_id
        super().__init__(message, {"integration": integration})


class InternalError(AppError):
    status_code = 500

    def __init__(self, message: str = "Error interno del servidor") -> None:
        super().__init__(message)
