from __future__ import annotations

import datetime as dt
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# -------------------------
# Dominio
# -------------------------
class CheckInRecord(BaseModel):
    # En JSON el campo se llama "date" (formato del snapshot guardado)
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date_key: str = Field(..., alias="date", description="YYYY-MM-DD")
    hours: float
    quote: str


PlanKind = Literal["pre_start", "phase", "exam_day", "post_exam"]


class StudyPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: PlanKind
    phase: str
    focus: str
    tasks: tuple[str, ...] = Field(..., min_length=1)


# -------------------------
# Requests
# -------------------------
class CheckInRequest(BaseModel):
    date: Optional[dt.date] = Field(
        default=None,
        description="Fecha del check-in. Si no se envía, usa hoy.",
    )
    # Se valida en el ledger (número finito >= mínimo); acá se acepta texto tal cual llega del form
    hours: Union[float, str, None] = None


# -------------------------
# Responses
# -------------------------
class CheckInOut(BaseModel):
    record: CheckInRecord
    created: bool
    persisted: bool = True
    warning: Optional[str] = None


class CountdownOut(BaseModel):
    status: Literal["BEFORE", "TODAY", "AFTER"]
    days: int


class DayOut(BaseModel):
    date: str
    is_today: bool
    is_future: bool
    is_exam_day: bool
    checked_in: bool
    record: Optional[CheckInRecord] = None
    plan: StudyPlan
    days_until_exam: int
    countdown: CountdownOut


class CalendarDayOut(BaseModel):
    date: str
    day: int
    checked_in: bool
    is_today: bool
    is_exam_day: bool


class CalendarMonthOut(BaseModel):
    year: int
    month: int
    leading_blanks: int  # semana empieza en domingo
    days: list[CalendarDayOut]


class SummaryOut(BaseModel):
    today: str
    total_check_ins: int
    current_streak: int
    days_until_exam: int
    exam_date: str


class PhaseOut(BaseModel):
    start: str
    end: str
    plan: StudyPlan
