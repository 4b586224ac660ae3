from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from studyplan.core.errors import PersistenceUnavailable
from studyplan.db.models import KeyValueEntry


class SqlKeyValueStore:
    """KeyValueStore sobre la tabla kv_store. Una sesión corta por operación."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                row = db.get(KeyValueEntry, key)
                return row.value if row else None
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"No se pudo leer '{key}': {exc}") from exc

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            try:
                db.merge(KeyValueEntry(key=key, value=value))
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceUnavailable(f"No se pudo guardar '{key}': {exc}") from exc
