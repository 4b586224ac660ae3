import time
from datetime import date, datetime, timezone

import pytest

from studyplan.core.date_utils import (
    canonical_date_key,
    date_from_value,
    date_value,
    days_between,
    days_until_exam,
    format_date_key,
    is_same_calendar_day,
    parse_date_key,
)
from studyplan.core.plan_service import classify

EXAM = date(2026, 4, 11)


def test_format_date_key_zero_pads():
    assert format_date_key(date(2026, 1, 5)) == "2026-01-05"
    assert format_date_key(datetime(987, 12, 31, 8, 0)) == "0987-12-31"


def test_same_day_different_times_share_key():
    early = datetime(2026, 2, 1, 0, 0, 1)
    late = datetime(2026, 2, 1, 23, 59, 59)
    assert format_date_key(early) == format_date_key(late) == "2026-02-01"
    assert is_same_calendar_day(early, late)


def test_is_same_calendar_day_false_across_midnight():
    assert not is_same_calendar_day(datetime(2026, 2, 1, 23, 59), datetime(2026, 2, 2, 0, 0))


def test_days_between_exam_identities():
    assert days_between(EXAM, EXAM) == 0
    assert days_between(date(2026, 4, 10), EXAM) == 1
    assert days_until_exam(EXAM, EXAM) == 0
    assert days_until_exam(date(2026, 4, 12), EXAM) == -1


def test_days_between_ignores_time_of_day():
    # 2 minutos de diferencia real, 1 día de calendario
    assert days_between(datetime(2026, 4, 10, 23, 59), datetime(2026, 4, 11, 0, 1)) == 1
    assert days_between(datetime(2026, 4, 10, 0, 1), datetime(2026, 4, 10, 23, 59)) == 0


@pytest.mark.parametrize(
    "a,b",
    [
        (date(2026, 1, 12), EXAM),
        (date(2025, 12, 31), date(2026, 3, 1)),
        (datetime(2024, 2, 28, 22, 0), datetime(2024, 3, 1, 1, 0)),
    ],
)
def test_days_between_antisymmetric(a, b):
    assert days_between(a, b) == -days_between(b, a)


def test_days_between_over_dst_and_leap_year():
    assert days_between(date(2024, 2, 28), date(2024, 3, 1)) == 2
    assert days_between(date(2026, 3, 1), date(2026, 4, 1)) == 31


def test_parse_date_key():
    assert parse_date_key("2026-04-11") == EXAM
    with pytest.raises(ValueError):
        parse_date_key("2026/04/11")
    with pytest.raises(ValueError):
        parse_date_key("2026-02-30")


def test_date_value_round_trip():
    assert date_value(datetime(2026, 3, 15, 18, 0)) == 20260315
    assert date_from_value(20260315) == date(2026, 3, 15)


def test_canonical_date_key():
    assert canonical_date_key("2026-4-9") == "2026-04-09"
    assert canonical_date_key(" 2026-04-09 ") == "2026-04-09"
    assert canonical_date_key(date(2026, 4, 9)) == "2026-04-09"
    assert canonical_date_key("ayer") == "ayer"


# -------------------------
# datetime con zona horaria
# -------------------------

@pytest.fixture
def shanghai_tz(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset no existe en esta plataforma")
    monkeypatch.setenv("TZ", "Asia/Shanghai")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_aware_instant_uses_local_calendar_day(shanghai_tz):
    # 17:00 UTC del 31 de enero ya es 1 de febrero en UTC+8
    instant = datetime(2026, 1, 31, 17, 0, tzinfo=timezone.utc)

    assert format_date_key(instant) == "2026-02-01"
    assert days_between(instant, date(2026, 2, 1)) == 0
    assert is_same_calendar_day(instant, date(2026, 2, 1))
    assert days_until_exam(instant, EXAM) == 69

    plan = classify(instant)
    assert plan.kind == "phase"
    assert plan.phase.startswith("第二阶段")
