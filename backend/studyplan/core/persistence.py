from __future__ import annotations

import json
import logging
from typing import Mapping, Optional, Protocol

from pydantic import ValidationError

from studyplan.core.date_utils import canonical_date_key
from studyplan.core.errors import PersistenceCorrupt
from studyplan.core.schemas_plan import CheckInRecord

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Store de strings por clave (implementación concreta: db/kv_store.py)."""

    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class PersistenceGateway(Protocol):
    def load(self) -> Optional[dict[str, CheckInRecord]]: ...
    def save(self, records: Mapping[str, CheckInRecord]) -> None: ...


class JsonSnapshotGateway:
    """Guarda el mapa completo {date_key: {date, hours, quote}} como un único JSON bajo `key`.

    Last-write-wins a nivel del mapa entero: cada save reemplaza el snapshot anterior.
    """

    def __init__(self, store: KeyValueStore, key: str):
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> Optional[dict[str, CheckInRecord]]:
        raw = self._store.get(self._key)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceCorrupt(f"Snapshot '{self._key}' no es JSON válido: {exc}") from exc

        if not isinstance(data, dict):
            raise PersistenceCorrupt(f"Snapshot '{self._key}' no es un objeto JSON")

        records: dict[str, CheckInRecord] = {}
        for date_key, payload in data.items():
            try:
                record = CheckInRecord.model_validate(payload)
            except ValidationError as exc:
                logger.warning("Registro %s descartado (inválido): %s", date_key, exc.errors())
                continue

            # Claves viejas tipo "2026-4-9" se normalizan; la clave debe ser la fecha del registro
            key = canonical_date_key(date_key)
            if key != canonical_date_key(record.date_key):
                logger.warning("Registro %s descartado: su fecha es %s", date_key, record.date_key)
                continue
            if key in records:
                logger.warning("Registro %s descartado: %s ya estaba cargado", date_key, key)
                continue
            records[key] = record if record.date_key == key else record.model_copy(update={"date_key": key})
        return records

    def save(self, records: Mapping[str, CheckInRecord]) -> None:
        payload = {k: r.model_dump(by_alias=True) for k, r in records.items()}
        self._store.set(self._key, json.dumps(payload, ensure_ascii=False))
