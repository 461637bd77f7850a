from __future__ import annotations

from enum import Enum

from onboarding.backend.errors import BackendError, BackendErrorKind


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    VALIDATION = "validation"
    FATAL = "fatal"
    DEGRADED_SUCCESS = "degraded_success"


# User-facing strings (es-MX). Raw backend messages never go here.
MSG_EMAIL_TAKEN = "Este correo electrónico ya está registrado."
MSG_PHONE_TAKEN = "Este teléfono ya está registrado."
MSG_RESTAURANT_NAME_TAKEN = "Este nombre de restaurante ya está en uso."
MSG_INVALID_EMAIL = "El formato del correo electrónico no es válido."
MSG_WEAK_PASSWORD = "La contraseña debe tener al menos 6 caracteres."
MSG_NO_USER_ID = "No se pudo crear el usuario. No se recibió user.id."
MSG_SIGNUP_UNAVAILABLE = "No pudimos crear tu cuenta en este momento. Por favor, intenta de nuevo."
MSG_UNEXPECTED = "Hubo un error al procesar tu registro. Por favor, intenta de nuevo."
MSG_DEGRADED = (
    "Cuenta creada, pero hubo un problema al registrar tu perfil. "
    "Nuestro equipo revisará tu solicitud y te contactará."
)

SIGNUP_VALIDATION_MESSAGES: dict[BackendErrorKind, str] = {
    BackendErrorKind.DUPLICATE_EMAIL: MSG_EMAIL_TAKEN,
    BackendErrorKind.INVALID_EMAIL: MSG_INVALID_EMAIL,
    BackendErrorKind.WEAK_PASSWORD: MSG_WEAK_PASSWORD,
}


class ProvisioningError(Exception):
    """
    Halts a registration. Only raised for outcomes the caller must see as
    ok=False (validation, fatal); absorbed errors never become exceptions.
    """

    def __init__(self, kind: OutcomeKind, message: str, *, cause: BackendError | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause


class ValidationFailed(ProvisioningError):
    """`conflict` marks a value already held by another account (email, phone, name)."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        conflict: bool = False,
        cause: BackendError | None = None,
    ):
        super().__init__(OutcomeKind.VALIDATION, message, cause=cause)
        self.field = field
        self.conflict = conflict


class FatalProvisioningError(ProvisioningError):
    def __init__(self, message: str, *, cause: BackendError | None = None):
        super().__init__(OutcomeKind.FATAL, message, cause=cause)
