from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from studyplan.core.checkin_service import (
    CheckInLedger,
    CheckInPolicy,
    describe_day,
    ensure_check_in_allowed,
    month_overview,
    summary,
)
from studyplan.core.config import ExamConfig, Settings
from studyplan.core.date_utils import format_date_key, parse_date_key
from studyplan.core.errors import BelowMinimumHours, CheckInError, PersistenceUnavailable
from studyplan.core.schemas_plan import (
    CalendarMonthOut,
    CheckInOut,
    CheckInRecord,
    CheckInRequest,
    DayOut,
    SummaryOut,
)
from studyplan.deps import get_exam_config, get_ledger, get_now, get_policy, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkins", tags=["checkins"])

# Los endpoints que tocan el ledger son async: corren todos en el hilo del event loop.
# El commit de SQLAlchemy dentro de submit_check_in es síncrono y bloquea el loop mientras dura;
# se acepta porque el store es SQLite local de un solo usuario.


# =============================================================================
# Helpers
# =============================================================================

def _parse_key_or_422(raw: str) -> str:
    try:
        return format_date_key(parse_date_key(raw))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


async def _deferred_submit(
    ledger: CheckInLedger, date_key: str, hours: float, delay: float
) -> tuple[CheckInRecord, bool]:
    # demora fija solo de UX; una vez lanzada siempre termina
    if delay > 0:
        await asyncio.sleep(delay)
    created = not ledger.is_checked_in(date_key)
    return ledger.submit_check_in(date_key, hours), created


def _log_deferred_failure(date_key: str, task: asyncio.Task) -> None:
    # Si el cliente cortó, nadie espera el shield: el error se recoge acá
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Check-in diferido de %s terminó con error: %s", date_key, exc)


def _start_deferred_submit(
    ledger: CheckInLedger, date_key: str, hours: float, delay: float
) -> asyncio.Task:
    task = asyncio.ensure_future(_deferred_submit(ledger, date_key, hours, delay))
    task.add_done_callback(lambda t: _log_deferred_failure(date_key, t))
    return task


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=list[CheckInRecord], response_model_by_alias=True)
async def list_check_ins(ledger: CheckInLedger = Depends(get_ledger)):
    return ledger.records()


@router.get("/summary", response_model=SummaryOut)
async def get_summary(
    ledger: CheckInLedger = Depends(get_ledger),
    config: ExamConfig = Depends(get_exam_config),
    now: datetime = Depends(get_now),
):
    return summary(now, ledger, config)


@router.get("/day", response_model=DayOut, response_model_by_alias=True)
async def get_day(
    day: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD. Si no se envía, usa hoy."),
    ledger: CheckInLedger = Depends(get_ledger),
    config: ExamConfig = Depends(get_exam_config),
    now: datetime = Depends(get_now),
):
    return describe_day(day or now, now, ledger, config)


@router.get("/calendar", response_model=CalendarMonthOut)
async def get_calendar(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    ledger: CheckInLedger = Depends(get_ledger),
    config: ExamConfig = Depends(get_exam_config),
    now: datetime = Depends(get_now),
):
    return month_overview(year or now.year, month or now.month, now, ledger, config)


@router.get("/{date_key}", response_model=CheckInRecord, response_model_by_alias=True)
async def get_check_in(date_key: str, ledger: CheckInLedger = Depends(get_ledger)):
    key = _parse_key_or_422(date_key)
    record = ledger.get(key)
    if not record:
        raise HTTPException(status_code=404, detail=f"No hay check-in para {key}")
    return record


@router.post(
    "",
    response_model=CheckInOut,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_check_in(
    data: CheckInRequest,
    response: Response,
    ledger: CheckInLedger = Depends(get_ledger),
    config: ExamConfig = Depends(get_exam_config),
    policy: CheckInPolicy = Depends(get_policy),
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
):
    day = data.date or now
    key = format_date_key(day)

    # 1) Fecha permitida (futuro / antes del inicio según política)
    try:
        ensure_check_in_allowed(day, now, config, policy)
    except CheckInError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    # 2) Horas: se rechaza antes de la demora
    try:
        hours = ledger.validate_hours(data.hours)
    except BelowMinimumHours as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    # 3) Ya registrado: no se pisa (first-write-wins)
    existing = ledger.get(key)
    if existing is not None:
        response.status_code = status.HTTP_200_OK
        return CheckInOut(record=existing, created=False)

    # 4) Alta diferida
    task = _start_deferred_submit(ledger, key, hours, settings.CHECKIN_DELAY_SECONDS)
    try:
        record, created = await asyncio.shield(task)
    except PersistenceUnavailable as exc:
        return CheckInOut(
            record=exc.record,
            created=True,
            persisted=False,
            warning="El check-in quedó registrado pero no se pudo guardar; puede perderse al reiniciar.",
        )

    if not created:
        response.status_code = status.HTTP_200_OK
    return CheckInOut(record=record, created=created)
