from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping, Optional, Union

from studyplan.core.config import ExamConfig
from studyplan.core.date_utils import (
    DateLike,
    canonical_date_key,
    days_until_exam,
    format_date_key,
    is_same_calendar_day,
    local_date,
)
from studyplan.core.errors import (
    BeforeStartNotAllowed,
    BelowMinimumHours,
    FutureDateNotAllowed,
    PersistenceCorrupt,
    PersistenceUnavailable,
)
from studyplan.core.persistence import PersistenceGateway
from studyplan.core.plan_service import classify
from studyplan.core.quotes import QuoteSource
from studyplan.core.schemas_plan import (
    CalendarDayOut,
    CalendarMonthOut,
    CheckInRecord,
    CountdownOut,
    DayOut,
    SummaryOut,
)

logger = logging.getLogger(__name__)

DEFAULT_STREAK_LIMIT = 3660

DateKeyLike = Union[str, DateLike]


# =============================================================================
# Ledger
# =============================================================================

class CheckInLedger:
    """Mapa date_key -> CheckInRecord de la sesión.

    Contrato:
    - Un registro por fecha; una vez creado no se modifica (first-write-wins).
    - Cada check-in nuevo guarda el snapshot completo (una escritura por alta).
    - Los registros cargados del store no se re-validan contra el mínimo de horas.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        quote_source: QuoteSource,
        records: Optional[Mapping[str, CheckInRecord]] = None,
        minimum_hours: float = 3.0,
        streak_limit: int = DEFAULT_STREAK_LIMIT,
    ):
        self._gateway = gateway
        self._quotes = quote_source
        self._records: dict[str, CheckInRecord] = {
            canonical_date_key(k): r for k, r in (records or {}).items()
        }
        self.minimum_hours = minimum_hours
        self.streak_limit = streak_limit

    @classmethod
    def load(
        cls,
        gateway: PersistenceGateway,
        quote_source: QuoteSource,
        minimum_hours: float = 3.0,
        streak_limit: int = DEFAULT_STREAK_LIMIT,
    ) -> "CheckInLedger":
        try:
            records = gateway.load()
        except PersistenceCorrupt as exc:
            logger.warning("Snapshot de check-ins corrupto, se arranca vacío: %s", exc)
            records = None

        ledger = cls(
            gateway,
            quote_source,
            records=records,
            minimum_hours=minimum_hours,
            streak_limit=streak_limit,
        )
        logger.info("Ledger cargado: %d check-ins", ledger.total_check_ins())
        return ledger

    # -------------------------
    # Lectura
    # -------------------------
    def is_checked_in(self, date_key: DateKeyLike) -> bool:
        return canonical_date_key(date_key) in self._records

    def get(self, date_key: DateKeyLike) -> Optional[CheckInRecord]:
        return self._records.get(canonical_date_key(date_key))

    def records(self) -> list[CheckInRecord]:
        return [self._records[k] for k in sorted(self._records)]

    def total_check_ins(self) -> int:
        return len(self._records)

    def current_streak(self, reference: DateLike) -> int:
        """Días consecutivos con check-in, caminando hacia atrás desde `reference` (incluido)."""
        day = local_date(reference)
        streak = 0
        while streak < self.streak_limit and format_date_key(day) in self._records:
            streak += 1
            day -= timedelta(days=1)
        return streak

    # -------------------------
    # Escritura
    # -------------------------
    def validate_hours(self, hours) -> float:
        if hours is None or isinstance(hours, bool):
            raise BelowMinimumHours(hours, self.minimum_hours)
        try:
            value = float(hours.strip() if isinstance(hours, str) else hours)
        except (TypeError, ValueError):
            raise BelowMinimumHours(hours, self.minimum_hours)
        if not math.isfinite(value) or value < self.minimum_hours:
            raise BelowMinimumHours(hours, self.minimum_hours)
        return value

    def submit_check_in(self, date_key: DateKeyLike, hours) -> CheckInRecord:
        """Registra el check-in de `date_key` (string o fecha; se guarda como YYYY-MM-DD).

        Raises:
            BelowMinimumHours: horas faltantes, no numéricas o bajo el mínimo. Sin cambios.
            PersistenceUnavailable: el registro quedó en memoria pero no se pudo guardar
                (exc.record trae el registro).
        """
        value = self.validate_hours(hours)
        date_key = canonical_date_key(date_key)

        existing = self._records.get(date_key)
        if existing is not None:
            # Ya hay registro: no se pisa ni se vuelve a guardar
            return existing

        record = CheckInRecord(date_key=date_key, hours=value, quote=self._quotes.next())
        self._records[date_key] = record

        try:
            self._gateway.save(self._records)
        except PersistenceUnavailable as exc:
            logger.error("Check-in %s en memoria pero no persistido: %s", date_key, exc)
            raise PersistenceUnavailable(str(exc), record=record) from exc

        logger.info("Check-in %s registrado (%.1f h)", date_key, value)
        return record


# =============================================================================
# Política de fechas
# =============================================================================

@dataclass(frozen=True)
class CheckInPolicy:
    allow_future: bool = False
    allow_before_start: bool = True


def ensure_check_in_allowed(
    day: DateLike,
    today: DateLike,
    config: ExamConfig,
    policy: CheckInPolicy = CheckInPolicy(),
) -> None:
    d = local_date(day)
    if not policy.allow_future and d > local_date(today):
        raise FutureDateNotAllowed(format_date_key(d))
    if not policy.allow_before_start and d < config.start_date:
        raise BeforeStartNotAllowed(format_date_key(d), format_date_key(config.start_date))


# =============================================================================
# Vistas derivadas (lo que consume la capa visual)
# =============================================================================

def _countdown(days: int) -> CountdownOut:
    if days > 0:
        return CountdownOut(status="BEFORE", days=days)
    if days == 0:
        return CountdownOut(status="TODAY", days=0)
    return CountdownOut(status="AFTER", days=abs(days))


def describe_day(day: DateLike, now: DateLike, ledger: CheckInLedger, config: ExamConfig) -> DayOut:
    """Estado de la fecha seleccionada. La cuenta regresiva es relativa a `day`, no a hoy."""
    d = local_date(day)
    key = format_date_key(d)
    remaining = days_until_exam(d, config.exam_date)
    return DayOut(
        date=key,
        is_today=is_same_calendar_day(d, now),
        is_future=d > local_date(now),
        is_exam_day=is_same_calendar_day(d, config.exam_date),
        checked_in=ledger.is_checked_in(key),
        record=ledger.get(key),
        plan=classify(d),
        days_until_exam=remaining,
        countdown=_countdown(remaining),
    )


def month_overview(
    year: int,
    month: int,
    now: DateLike,
    ledger: CheckInLedger,
    config: ExamConfig,
) -> CalendarMonthOut:
    first_weekday, n_days = calendar.monthrange(year, month)  # lunes = 0
    days = []
    for n in range(1, n_days + 1):
        d = date(year, month, n)
        key = format_date_key(d)
        days.append(
            CalendarDayOut(
                date=key,
                day=n,
                checked_in=ledger.is_checked_in(key),
                is_today=is_same_calendar_day(d, now),
                is_exam_day=is_same_calendar_day(d, config.exam_date),
            )
        )
    return CalendarMonthOut(
        year=year,
        month=month,
        leading_blanks=(first_weekday + 1) % 7,
        days=days,
    )


def summary(now: DateLike, ledger: CheckInLedger, config: ExamConfig) -> SummaryOut:
    # La racha siempre se mide desde "ahora", nunca desde la fecha seleccionada
    return SummaryOut(
        today=format_date_key(now),
        total_check_ins=ledger.total_check_ins(),
        current_streak=ledger.current_streak(now),
        days_until_exam=days_until_exam(now, config.exam_date),
        exam_date=format_date_key(config.exam_date),
    )
