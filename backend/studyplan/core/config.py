from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Lee variables desde un archivo .env en la raíz de /backend
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Calendario del examen (hora local)
    EXAM_DATE: date = date(2026, 4, 11)
    START_DATE: date = date(2026, 1, 12)
    MINIMUM_HOURS: float = 3.0

    # Si no hay .env / variable, usa este valor por defecto (local)
    DATABASE_URL: str = "sqlite:///./studyplan.db"
    STORAGE_KEY: str = "study_checkins_v3"

    CHECKIN_DELAY_SECONDS: float = 0.6
    STREAK_MAX_DAYS: int = 3660  # ~10 años

    ALLOW_CHECKIN_BEFORE_START: bool = True
    ALLOW_FUTURE_CHECKIN: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    LOG_LEVEL: str = "INFO"


@dataclass(frozen=True)
class ExamConfig:
    """Fechas y umbral fijos del proceso. Se construye una vez desde Settings."""

    exam_date: date
    start_date: date
    minimum_hours: float = 3.0

    def __post_init__(self) -> None:
        if self.start_date > self.exam_date:
            raise ValueError("start_date no puede ser posterior a exam_date")
        if self.minimum_hours < 0:
            raise ValueError("minimum_hours debe ser >= 0")

    @classmethod
    def from_settings(cls, s: Settings) -> "ExamConfig":
        return cls(
            exam_date=s.EXAM_DATE,
            start_date=s.START_DATE,
            minimum_hours=float(s.MINIMUM_HOURS),
        )


settings = Settings()
