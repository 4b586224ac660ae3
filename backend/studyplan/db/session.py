from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    kwargs = {}
    if database_url.startswith("sqlite"):
        # SQLite: el loop de FastAPI y el threadpool pueden tocar la misma conexión
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # una sola conexión para que la DB en memoria no desaparezca entre sesiones
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, pool_pre_ping=True, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(engine: Engine) -> None:
    # importa los modelos para que queden registrados en Base.metadata
    from studyplan.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
