"""
Ledger collaborator used by the record stores.

A ``Ledger`` opens one ``LedgerTransaction`` per top-level invocation (one
SQLAlchemy session, one transaction id, one timestamp). Stores never touch the
session directly; each is handed a ``LedgerStub`` bound to its own namespace,
offering point reads and writes, range scans, key history, selector queries and
synchronous calls into other stores.
"""
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from qaledger.core.errors import StoreError
from qaledger.models.orm import LedgerHistory, LedgerState
from qaledger.models.records import parse_document

logger = logging.getLogger(__name__)

OK = 200
ERROR = 500

@dataclass
class Response:
    """Outcome of a command: a payload on success, a named failure otherwise."""
    status: int
    payload: bytes = b""
    message: str = ""
    kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OK

    @classmethod
    def success(cls, payload: bytes = b"") -> "Response":
        return cls(status=OK, payload=payload)

    @classmethod
    def failure(cls, error: StoreError) -> "Response":
        return cls(status=ERROR, message=str(error), kind=error.kind)

@dataclass(frozen=True)
class Selector:
    """Single-field equality predicate over a store's indexed documents."""
    field: str
    value: Any

@dataclass
class HistoryRecord:
    tx_id: str
    timestamp: datetime
    value: bytes

Invoker = Callable[[str, str, Sequence[str]], Response]

def _as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything the ledger writes is UTC."""
    return moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment.astimezone(timezone.utc)

@dataclass
class LedgerTransaction:
    session: Session
    tx_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    failed: bool = False

    def mark_failed(self) -> None:
        self.failed = True

class Ledger:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[LedgerTransaction]:
        """Commit on success; roll back if marked failed or on any exception."""
        session = self.session_factory()
        tx = LedgerTransaction(session=session)
        try:
            yield tx
            if tx.failed:
                session.rollback()
                logger.debug(f"Transaction {tx.tx_id} rolled back")
            else:
                session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

class LedgerStub:
    def __init__(self, tx: LedgerTransaction, namespace: str, invoker: Optional[Invoker] = None):
        self.tx = tx
        self.namespace = namespace
        self._invoker = invoker

    @property
    def tx_id(self) -> str:
        return self.tx.tx_id

    @property
    def tx_timestamp(self) -> datetime:
        return self.tx.timestamp

    def _row(self, key: str) -> Optional[LedgerState]:
        # row lock on dialects that support FOR UPDATE; SQLite locks at BEGIN
        return self.tx.session.get(LedgerState, (self.namespace, key), with_for_update=True)

    def get_state(self, key: str) -> Optional[bytes]:
        row = self._row(key)
        return row.value if row is not None else None

    def put_state(self, key: str, value: bytes) -> None:
        if not key:
            raise ValueError("ledger key must be non-empty")
        session = self.tx.session
        row = self._row(key)
        if row is None:
            row = LedgerState(namespace=self.namespace, key=key)
            session.add(row)
        row.value = value
        row.document = parse_document(value)
        row.tx_id = self.tx_id
        row.updated_at = self.tx_timestamp
        session.add(LedgerHistory(
            namespace=self.namespace, key=key, tx_id=self.tx_id, value=value, recorded_at=self.tx_timestamp,
        ))
        session.flush()

    def get_state_by_range(self, start_key: str = "", end_key: str = "") -> List[Tuple[str, bytes]]:
        """Keys in [start_key, end_key); an empty bound is open."""
        stmt = select(LedgerState).where(LedgerState.namespace == self.namespace)
        if start_key:
            stmt = stmt.where(LedgerState.key >= start_key)
        if end_key:
            stmt = stmt.where(LedgerState.key < end_key)
        rows = self.tx.session.scalars(stmt.order_by(LedgerState.key)).all()
        return [(r.key, r.value) for r in rows]

    def get_history_for_key(self, key: str) -> List[HistoryRecord]:
        stmt = (
            select(LedgerHistory)
            .where(LedgerHistory.namespace == self.namespace, LedgerHistory.key == key)
            .order_by(LedgerHistory.id)
        )
        rows = self.tx.session.scalars(stmt).all()
        return [HistoryRecord(tx_id=r.tx_id, timestamp=_as_utc(r.recorded_at), value=r.value) for r in rows]

    def get_query_result(self, selector: Selector) -> List[Tuple[str, bytes]]:
        column = LedgerState.document[selector.field]
        value = selector.value
        if isinstance(value, bool):
            condition = column.as_boolean() == value
        elif isinstance(value, int):
            condition = column.as_integer() == value
        else:
            condition = column.as_string() == str(value)
        stmt = (
            select(LedgerState)
            .where(LedgerState.namespace == self.namespace, LedgerState.document.is_not(None), condition)
            .order_by(LedgerState.key)
        )
        rows = self.tx.session.scalars(stmt).all()
        return [(r.key, r.value) for r in rows]

    def invoke_store(self, store_name: str, function: str, args: Sequence[str]) -> Response:
        """Synchronously call another store inside the same transaction context."""
        if self._invoker is None:
            raise RuntimeError(f"store {self.namespace} has no collaborator invoker")
        logger.debug(f"{self.namespace} -> {store_name}.{function} (tx {self.tx_id})")
        return self._invoker(store_name, function, list(args))
