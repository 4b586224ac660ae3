from sqlalchemy import Column, DateTime, String, Text, func

from studyplan.db.session import Base


# -------------------------
# KEY-VALUE STORE (tabla: kv_store)
# Un snapshot JSON por clave; el ledger de check-ins usa una sola clave fija.
# -------------------------
class KeyValueEntry(Base):
    __tablename__ = "kv_store"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
