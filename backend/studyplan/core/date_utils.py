from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Union

DateLike = Union[date, datetime]

# Fuente de "ahora" inyectable (hora local). Se consulta en cada cálculo, nunca se cachea.
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now()


def local_date(value: DateLike) -> date:
    """Fecha de calendario local de `value`.

    - date: se usa tal cual.
    - datetime naive: se interpreta como hora local.
    - datetime con tzinfo: se convierte primero a la zona local del proceso.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def format_date_key(value: DateLike) -> str:
    d = local_date(value)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_date_key(key: str) -> date:
    try:
        y, m, d = (int(part) for part in key.strip().split("-"))
        return date(y, m, d)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Fecha inválida (se espera YYYY-MM-DD): {key!r}") from exc


def date_value(value: DateLike) -> int:
    # Entero YYYYMMDD para comparar rangos cerrados sin parsear strings
    d = local_date(value)
    return d.year * 10000 + d.month * 100 + d.day


def days_between(start: DateLike, end: DateLike) -> int:
    # Ambos extremos se reducen a su día de calendario antes de restar,
    # así la hora del día no cambia el resultado.
    return local_date(end).toordinal() - local_date(start).toordinal()


def is_same_calendar_day(d1: DateLike, d2: DateLike) -> bool:
    a, b = local_date(d1), local_date(d2)
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def days_until_exam(from_value: DateLike, exam_date: date) -> int:
    """0 el día del examen, negativo una vez pasado."""
    return days_between(from_value, exam_date)


def date_from_value(value: int) -> date:
    # inversa de date_value
    return date(value // 10000, value // 100 % 100, value % 100)


def canonical_date_key(value: Union[str, date, datetime]) -> str:
    """Clave YYYY-MM-DD de `value` ("2026-4-9" -> "2026-04-09").

    Un string sin formato de fecha reconocible se devuelve tal cual (no coincide con ningún día).
    """
    if isinstance(value, str):
        try:
            return format_date_key(parse_date_key(value))
        except ValueError:
            return value
    return format_date_key(value)
