import json
import pytest

from qaledger.core.config import Settings
from qaledger.core.database import build_engine, build_session_factory, init_db
from qaledger.core.ledger import Ledger
from qaledger.services.registry import build_registry

SECRET = "s3cret-pass"

@pytest.fixture
def settings():
    return Settings(ENVIRONMENT="testing", DATABASE_URL="sqlite://", BCRYPT_ROUNDS=4)

@pytest.fixture
def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)
    yield engine
    engine.dispose()

@pytest.fixture
def ledger(engine):
    return Ledger(build_session_factory(engine))

@pytest.fixture
def registry(settings, ledger):
    return build_registry(settings, ledger)

@pytest.fixture
def call(registry):
    def _call(store, function, *args):
        return registry.invoke(store, function, [str(a) for a in args])
    return _call

@pytest.fixture
def record(call):
    """Fetch a stored record as a dict, or None if absent."""
    def _record(store, key):
        response = call(store, "getById", key)
        return json.loads(response.payload) if response.ok else None
    return _record

@pytest.fixture
def question(call):
    response = call("questions", "submit", "Q1", "cid-q1", "author-1", "rust", "1")
    assert response.ok, response.message
    return "Q1"

@pytest.fixture
def student(call):
    response = call("students", "register", "rust", "S1", SECRET)
    assert response.ok, response.message
    return "S1"

@pytest.fixture
def evaluator(call):
    response = call("evaluators", "register", "rust", "E1", SECRET)
    assert response.ok, response.message
    return "E1"

@pytest.fixture
def answer(call, question, student):
    response = call("answers", "submit", "questions", "students", "A1", "cid-a1", student, question)
    assert response.ok, response.message
    return "A1"

@pytest.fixture
def file_ledger(tmp_path):
    """A ledger on a database file, so each session gets its own connection."""
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield Ledger(build_session_factory(engine))
    engine.dispose()

@pytest.fixture
def file_registry(settings, file_ledger):
    return build_registry(settings, file_ledger)
