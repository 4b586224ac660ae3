from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyplan.core.checkin_service import CheckInLedger, CheckInPolicy
from studyplan.core.config import ExamConfig, Settings, settings as default_settings
from studyplan.core.date_utils import Clock, system_clock
from studyplan.core.persistence import JsonSnapshotGateway, KeyValueStore
from studyplan.core.plan_service import log_rule_table_problems
from studyplan.core.quotes import QuoteSource, RandomQuoteSource
from studyplan.db.kv_store import SqlKeyValueStore
from studyplan.db.session import init_db, make_engine, make_session_factory
from studyplan.router_checkins import router as checkins_router
from studyplan.router_plan import router as plan_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    clock: Clock = system_clock,
    quote_source: Optional[QuoteSource] = None,
) -> FastAPI:
    """Arma la app con un ledger propio (uno por proceso).

    `store`, `clock` y `quote_source` se inyectan en tests; por defecto se usa la DB
    de DATABASE_URL, el reloj local y el pool de frases embebido.
    """
    settings = settings or default_settings
    exam_config = ExamConfig.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        kv = store
        engine = None
        if kv is None:
            engine = make_engine(settings.DATABASE_URL)
            init_db(engine)
            kv = SqlKeyValueStore(make_session_factory(engine))

        log_rule_table_problems(exam_config.start_date, exam_config.exam_date)

        app.state.ledger = CheckInLedger.load(
            JsonSnapshotGateway(kv, settings.STORAGE_KEY),
            quote_source or RandomQuoteSource(),
            minimum_hours=exam_config.minimum_hours,
            streak_limit=settings.STREAK_MAX_DAYS,
        )
        try:
            yield
        finally:
            if engine is not None:
                engine.dispose()

    app = FastAPI(title="Study check-in tracker", lifespan=lifespan)
    app.state.settings = settings
    app.state.exam_config = exam_config
    app.state.clock = clock
    app.state.policy = CheckInPolicy(
        allow_future=settings.ALLOW_FUTURE_CHECKIN,
        allow_before_start=settings.ALLOW_CHECKIN_BEFORE_START,
    )

    # ✅ CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(plan_router)
    app.include_router(checkins_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


logging.basicConfig(
    level=default_settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("studyplan.main:app", host="127.0.0.1", port=8000)
