"""
Shared machinery for the record stores.

A ``RecordStore`` owns one entity type in its own ledger namespace. It exposes
a uniform command interface (function name plus string arguments), enforces
arity before any state is touched, and converts ``StoreError`` into a failed
``Response``. The typed methods behind the commands are usable directly.
"""
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, List, Optional, Sequence, Tuple, Type
import json
import logging

from qaledger.core.config import Settings, get_settings
from qaledger.core.errors import AlreadyExists, InvalidArgument, NotFound, StoreError
from qaledger.core.ledger import LedgerStub, Response, Selector
from qaledger.core.security import SecretHasher
from qaledger.models.records import HistoryEntry, LedgerRecord, QueryResult, TechReputation, encode_payload

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Command:
    handler: Callable[..., Any]
    params: Tuple[str, ...]

    @property
    def arity(self) -> int:
        return len(self.params)

def require_non_empty(**values: str) -> None:
    """Reject empty arguments, naming the first offender."""
    for name, value in values.items():
        if value is None or value == "":
            raise InvalidArgument(f"argument {name!r} must be a non-empty string")

def parse_int(value: str, name: str, minimum: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"argument {name!r} must be an integer, got {value!r}") from None
    if minimum is not None and number < minimum:
        raise InvalidArgument(f"argument {name!r} must be >= {minimum}, got {number}")
    return number

def _document(raw: bytes) -> Any:
    return json.loads(raw)

class RecordStore:
    """Base class for the four stores."""

    record_type: ClassVar[Type[LedgerRecord]]
    indexed_fields: ClassVar[Tuple[str, ...]] = ("id",)

    def __init__(self, name: str, settings: Optional[Settings] = None):
        self.name = name
        self.settings = settings or get_settings()
        self.commands: Dict[str, Command] = {
            "getById": Command(self.get_by_id, ("id",)),
            "queryById": Command(self.query_by_id, ("id",)),
            "queryByField": Command(self.query_by_field, ("field", "value")),
            "getHistory": Command(self.get_history, ("id",)),
            "readAll": Command(self.read_all, ()),
        }
        self.commands.update(self.build_commands())

    def build_commands(self) -> Dict[str, Command]:
        return {}

    # ============= Dispatch =============

    def invoke(self, stub: LedgerStub, function: str, args: Sequence[str]) -> Response:
        command = self.commands.get(function)
        try:
            if command is None:
                raise InvalidArgument(f"unknown function {function!r}")
            if len(args) != command.arity:
                raise InvalidArgument(
                    f"incorrect number of arguments, expecting {command.arity} "
                    f"({', '.join(command.params) or 'none'}) but got {len(args)}"
                )
            result = command.handler(stub, *args)
        except StoreError as e:
            e.with_context(self.name, function)
            logger.warning(f"{self.name}.{function} failed: {e}")
            return Response.failure(e)
        return Response.success(encode_payload(result))

    # ============= Record helpers =============

    def load(self, stub: LedgerStub, key: str) -> LedgerRecord:
        raw = stub.get_state(key)
        if raw is None:
            raise NotFound(f"{self.record_type.__name__} does not exist", key=key)
        return self.record_type.decode(raw, key=key)

    def create(self, stub: LedgerStub, record: LedgerRecord) -> None:
        if stub.get_state(record.id) is not None:
            raise AlreadyExists(f"{self.record_type.__name__} already exists", key=record.id)
        stub.put_state(record.id, record.encode())

    def save(self, stub: LedgerStub, record: LedgerRecord) -> None:
        stub.put_state(record.id, record.encode())

    def new_reputation(self, stub: LedgerStub, tech_area: str) -> TechReputation:
        return TechReputation(
            tech_area_name=tech_area,
            points=self.settings.STARTING_REPUTATION,
            created_at=stub.tx_timestamp,
        )

    # ============= Shared queries =============

    def get_by_id(self, stub: LedgerStub, id: str) -> bytes:
        require_non_empty(id=id)
        raw = stub.get_state(id)
        if raw is None:
            raise NotFound(f"{self.record_type.__name__} does not exist", key=id)
        return raw

    def query_by_id(self, stub: LedgerStub, id: str) -> List[QueryResult]:
        return self.query_by_field(stub, "id", id)

    def query_by_field(self, stub: LedgerStub, field: str, value: Any) -> List[QueryResult]:
        require_non_empty(field=field)
        resolved = self.record_type.resolve_field(field)
        if resolved is None or resolved[1] not in self.indexed_fields:
            raise InvalidArgument(
                f"{field!r} is not an indexed field, expecting one of {', '.join(self.indexed_fields)}"
            )
        name, alias = resolved
        if isinstance(value, str):
            require_non_empty(value=value)
            if self.record_type.model_fields[name].annotation is int:
                value = parse_int(value, "value")
        rows = stub.get_query_result(Selector(alias, value))
        return [QueryResult(key=key, record=_document(raw)) for key, raw in rows]

    def get_history(self, stub: LedgerStub, id: str) -> List[HistoryEntry]:
        require_non_empty(id=id)
        history = stub.get_history_for_key(id)
        if not history:
            raise NotFound(f"no history for {self.record_type.__name__}", key=id)
        return [HistoryEntry(tx_id=h.tx_id, timestamp=h.timestamp, record=_document(h.value)) for h in history]

    def read_all(self, stub: LedgerStub) -> List[QueryResult]:
        return [QueryResult(key=key, record=_document(raw)) for key, raw in stub.get_state_by_range("", "")]

class CredentialStore(RecordStore):
    """A store whose records carry a hashed secret."""

    def __init__(self, name: str, settings: Optional[Settings] = None, hasher: Optional[SecretHasher] = None):
        super().__init__(name, settings)
        self.hasher = hasher or SecretHasher(rounds=self.settings.BCRYPT_ROUNDS)

    def register(self, stub: LedgerStub, initial_tech_area: str, id: str, secret: str) -> None:
        """Create a holder with a hashed secret and one seeded reputation entry."""
        require_non_empty(initial_tech_area=initial_tech_area, id=id, secret=secret)
        if stub.get_state(id) is not None:
            raise AlreadyExists(f"{self.record_type.__name__} already exists", key=id)
        record = self.record_type(
            id=id,
            secret_hash=self.hasher.hash(secret),
            reputations=[self.new_reputation(stub, initial_tech_area)],
            created_at=stub.tx_timestamp,
        )
        self.create(stub, record)
        logger.info(f"Registered {self.record_type.__name__.lower()} {id} in {initial_tech_area}")
