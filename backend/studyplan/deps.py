from __future__ import annotations

from datetime import datetime

from fastapi import Request

from studyplan.core.checkin_service import CheckInLedger, CheckInPolicy
from studyplan.core.config import ExamConfig, Settings


# Todo vive en app.state (lo arma main.create_app); acá solo se expone vía Depends.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_exam_config(request: Request) -> ExamConfig:
    return request.app.state.exam_config


def get_policy(request: Request) -> CheckInPolicy:
    return request.app.state.policy


def get_ledger(request: Request) -> CheckInLedger:
    return request.app.state.ledger


def get_now(request: Request) -> datetime:
    # se lee el reloj en cada request: cruzar medianoche se refleja sin reiniciar
    return request.app.state.clock()
