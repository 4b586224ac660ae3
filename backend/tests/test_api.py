import asyncio
import json
from datetime import datetime

from fastapi.testclient import TestClient

from conftest import STORAGE_KEY, BrokenWriteStore, FixedQuotes
from studyplan.core.checkin_service import CheckInLedger
from studyplan.core.persistence import JsonSnapshotGateway
from studyplan.main import create_app
from studyplan.router_checkins import _start_deferred_submit


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_plan_for_date_and_today(client):
    r = client.get("/plan", params={"date": "2026-02-01"})
    assert r.status_code == 200
    assert r.json()["phase"].startswith("第二阶段")

    # reloj fijo: 2026-04-10 -> fase 5
    assert client.get("/plan").json()["phase"].startswith("第五阶段")


def test_plan_phases_table(client):
    phases = client.get("/plan/phases").json()
    assert phases[0]["start"] == "2026-01-12"
    assert phases[-1]["start"] == phases[-1]["end"] == "2026-04-11"
    assert phases[-1]["plan"]["kind"] == "exam_day"


def test_check_in_today(client, store):
    r = client.post("/checkins", json={"hours": 3})
    assert r.status_code == 201
    body = r.json()
    assert body["created"] is True
    assert body["persisted"] is True
    assert body["record"] == {"date": "2026-04-10", "hours": 3.0, "quote": "q1"}
    assert "2026-04-10" in json.loads(store.data[STORAGE_KEY])


def test_check_in_below_minimum(client, store):
    r = client.post("/checkins", json={"date": "2026-04-09", "hours": 2.9})
    assert r.status_code == 422
    assert client.get("/checkins/summary").json()["total_check_ins"] == 0
    assert store.writes == 0


def test_check_in_hours_as_form_text(client):
    assert client.post("/checkins", json={"hours": "abc"}).status_code == 422
    assert client.post("/checkins", json={"hours": "3.5"}).json()["record"]["hours"] == 3.5


def test_check_in_twice_keeps_first(client):
    first = client.post("/checkins", json={"date": "2026-04-09", "hours": 4}).json()["record"]
    r = client.post("/checkins", json={"date": "2026-04-09", "hours": 9})
    assert r.status_code == 200
    assert r.json()["created"] is False
    assert r.json()["record"] == first


def test_future_check_in_rejected(client):
    r = client.post("/checkins", json={"date": "2026-04-11", "hours": 5})
    assert r.status_code == 400


def test_summary_streak_and_countdown(client, now_holder):
    for day in ("2026-04-08", "2026-04-09", "2026-04-10"):
        assert client.post("/checkins", json={"date": day, "hours": 3}).status_code == 201

    s = client.get("/checkins/summary").json()
    assert s == {
        "today": "2026-04-10",
        "total_check_ins": 3,
        "current_streak": 3,
        "days_until_exam": 1,
        "exam_date": "2026-04-11",
    }

    # cruzar medianoche sin check-in nuevo: la racha se recalcula con el reloj
    now_holder["now"] = datetime(2026, 4, 11, 0, 5)
    s = client.get("/checkins/summary").json()
    assert s["current_streak"] == 0
    assert s["days_until_exam"] == 0


def test_day_view(client):
    client.post("/checkins", json={"date": "2026-04-09", "hours": 3})
    day = client.get("/checkins/day", params={"date": "2026-04-09"}).json()
    assert day["checked_in"] is True
    assert day["record"]["date"] == "2026-04-09"
    assert day["is_future"] is False
    assert day["countdown"] == {"status": "BEFORE", "days": 2}

    exam = client.get("/checkins/day", params={"date": "2026-04-11"}).json()
    assert exam["is_future"] is True
    assert exam["is_exam_day"] is True
    assert exam["days_until_exam"] == 0
    assert exam["record"] is None


def test_get_and_list_check_ins(client):
    client.post("/checkins", json={"date": "2026-04-10", "hours": 3})
    client.post("/checkins", json={"date": "2026-03-01", "hours": 3})

    assert [r["date"] for r in client.get("/checkins").json()] == ["2026-03-01", "2026-04-10"]
    assert client.get("/checkins/2026-03-01").json()["hours"] == 3.0
    assert client.get("/checkins/2026-03-02").status_code == 404
    assert client.get("/checkins/ayer").status_code == 422


def test_calendar(client):
    client.post("/checkins", json={"date": "2026-04-02", "hours": 3})
    cal = client.get("/checkins/calendar").json()
    assert (cal["year"], cal["month"]) == (2026, 4)
    assert cal["leading_blanks"] == 3
    assert cal["days"][1]["checked_in"] is True
    assert cal["days"][10]["is_exam_day"] is True

    feb = client.get("/checkins/calendar", params={"year": 2026, "month": 2}).json()
    assert len(feb["days"]) == 28


def test_persistence_failure_reported_not_fatal(test_settings):
    app = create_app(
        settings=test_settings,
        store=BrokenWriteStore(),
        clock=lambda: datetime(2026, 4, 10, 12, 0),
        quote_source=FixedQuotes(),
    )
    with TestClient(app) as c:
        r = c.post("/checkins", json={"hours": 3})
        assert r.status_code == 201
        assert r.json()["persisted"] is False
        assert r.json()["warning"]
        assert c.get("/checkins/summary").json()["total_check_ins"] == 1


def test_ledger_survives_restart_with_sql_store(test_settings, tmp_path):
    settings = test_settings.model_copy(update={"DATABASE_URL": f"sqlite:///{tmp_path / 'checkins.db'}"})
    clock = lambda: datetime(2026, 4, 10, 12, 0)  # noqa: E731

    with TestClient(create_app(settings=settings, clock=clock, quote_source=FixedQuotes("primera"))) as c:
        assert c.post("/checkins", json={"hours": 4}).status_code == 201

    with TestClient(create_app(settings=settings, clock=clock, quote_source=FixedQuotes("otra"))) as c:
        record = c.get("/checkins/2026-04-10").json()
        assert record["quote"] == "primera"
        assert record["hours"] == 4.0


def test_deferred_failure_logged_when_request_is_gone(caplog):
    ledger = CheckInLedger.load(JsonSnapshotGateway(BrokenWriteStore(), STORAGE_KEY), FixedQuotes())

    async def abandoned_request():
        # nadie hace await del shield: la tarea termina sola
        task = _start_deferred_submit(ledger, "2026-04-10", 3.0, 0)
        await asyncio.wait([task])
        await asyncio.sleep(0)

    with caplog.at_level("WARNING"):
        asyncio.run(abandoned_request())

    logged = [r for r in caplog.records if r.name == "studyplan.router_checkins"]
    assert len(logged) == 1
    assert "2026-04-10" in logged[0].getMessage()
    assert ledger.is_checked_in("2026-04-10")
