from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from studyplan.core.date_utils import date_from_value, format_date_key
from studyplan.core.plan_service import PHASE_RULES, classify
from studyplan.core.schemas_plan import PhaseOut, StudyPlan
from studyplan.deps import get_now

router = APIRouter(prefix="/plan", tags=["plan"])


@router.get("", response_model=StudyPlan)
def get_plan(
    day: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD. Si no se envía, usa hoy."),
    now: datetime = Depends(get_now),
):
    return classify(day or now)


@router.get("/phases", response_model=list[PhaseOut])
def list_phases():
    # tabla completa en orden de evaluación (sin pre-inicio / post-examen)
    return [
        PhaseOut(
            start=format_date_key(date_from_value(rule.start)),
            end=format_date_key(date_from_value(rule.end)),
            plan=rule.plan,
        )
        for rule in PHASE_RULES
    ]
