from datetime import datetime
from typing import Any, Optional
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import BigInteger, DateTime, Index, Integer, JSON, LargeBinary, String

class Base(DeclarativeBase): pass

class LedgerState(Base):
    """Current value of every key, one key space per store namespace."""
    __tablename__ = "ledger_state"
    namespace: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary)
    # parsed JSON copy of value, the secondary index for selector queries
    document: Mapped[Optional[Any]] = mapped_column(JSON(none_as_null=True), nullable=True)
    tx_id: Mapped[str] = mapped_column(String(64))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

class LedgerHistory(Base):
    """Append-only trail of every value ever written to a key."""
    __tablename__ = "ledger_history"
    __table_args__ = (
        Index("idx_lh_key", "namespace", "key"),
    )
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64))
    key: Mapped[str] = mapped_column(String(255))
    tx_id: Mapped[str] = mapped_column(String(64))
    value: Mapped[bytes] = mapped_column(LargeBinary)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
