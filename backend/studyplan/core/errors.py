from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from studyplan.core.schemas_plan import CheckInRecord


# =============================================================================
# Errores de check-in (entrada del usuario). Se recuperan localmente.
# =============================================================================

class CheckInError(ValueError):
    """Base de los rechazos de check-in: no hay cambio de estado."""


class BelowMinimumHours(CheckInError):
    def __init__(self, hours, minimum_hours: float):
        self.hours = hours
        self.minimum_hours = minimum_hours
        super().__init__(
            f"Se necesitan al menos {minimum_hours:g} horas de estudio para hacer check-in "
            f"(recibido: {hours!r})"
        )


class FutureDateNotAllowed(CheckInError):
    def __init__(self, date_key: str):
        self.date_key = date_key
        super().__init__(f"Todavía no llegó el {date_key}: no se puede hacer check-in a futuro")


class BeforeStartNotAllowed(CheckInError):
    def __init__(self, date_key: str, start_key: str):
        self.date_key = date_key
        self.start_key = start_key
        super().__init__(f"{date_key} es anterior al inicio del plan ({start_key})")


# =============================================================================
# Errores de persistencia
# =============================================================================

class PersistenceError(RuntimeError):
    pass


class PersistenceCorrupt(PersistenceError):
    """El snapshot guardado no se puede parsear."""


class PersistenceUnavailable(PersistenceError):
    """No se pudo leer/escribir el store.

    Si ocurre al guardar un check-in, `record` trae el registro que sí quedó en memoria.
    """

    def __init__(self, message: str, record: Optional["CheckInRecord"] = None):
        super().__init__(message)
        self.record = record
