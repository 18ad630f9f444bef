from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from qaledger.core.config import settings
from qaledger.models.orm import Base

logger = logging.getLogger(__name__)

def _lock_on_begin(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock when it starts.

    pysqlite defers BEGIN until the first write, so two invocations could both
    read a record before either writes it. With the driver's own transaction
    handling off, each transaction opens with BEGIN IMMEDIATE and top-level
    invocations are serialised.
    """
    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

def build_engine(url: str, echo: bool = False, lock_timeout: float = 30.0) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": lock_timeout}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, future=True, **kwargs)
        _lock_on_begin(engine)
        return engine
    return create_engine(url, echo=echo, future=True, pool_pre_ping=True)

def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False, future=True)

engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, lock_timeout=settings.DATABASE_LOCK_TIMEOUT)
SessionLocal = build_session_factory(engine)

def init_db(bind: Engine = engine) -> None:
    """Create the ledger tables if they don't exist."""
    Base.metadata.create_all(bind)
    logger.info(f"Ledger tables ready on {bind.url.render_as_string(hide_password=True)}")

def close_db(bind: Engine = engine) -> None:
    bind.dispose()
