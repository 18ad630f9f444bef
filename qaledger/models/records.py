"""
Ledger record schemas.

Each entity is a pydantic model persisted as a self-describing JSON document
with camelCase field names, so any store can decode a record written by
another. ``encode``/``decode`` are the one canonical codec pair per type.
"""
import json
from datetime import datetime
from typing import Any, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from qaledger.core.errors import DuplicateOperation, EncodingError, InvalidArgument, NotFound

R = TypeVar("R", bound="LedgerRecord")


class LedgerRecord(BaseModel):
    """Base class for everything a store persists."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str

    def encode(self) -> bytes:
        try:
            return self.model_dump_json(by_alias=True).encode("utf-8")
        except ValueError as e:
            raise EncodingError(f"cannot encode {type(self).__name__}: {e}", key=self.id) from e

    @classmethod
    def decode(cls: Type[R], data: bytes, key: Optional[str] = None) -> R:
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise EncodingError(f"cannot decode {cls.__name__}: {e.error_count()} invalid field(s)", key=key) from e

    @classmethod
    def resolve_field(cls, field: str) -> Optional[Tuple[str, str]]:
        """Map a field given in either spelling to (attribute name, stored camelCase name)."""
        for name, info in cls.model_fields.items():
            alias = info.alias or name
            if field in (name, alias):
                return name, alias
        return None


def _add_unique(ids: List[str], value: str, what: str, key: str) -> None:
    """Insert into an append-only id set, refusing duplicates."""
    if value in ids:
        raise DuplicateOperation(f"{what} {value} already recorded", key=key)
    ids.append(value)


def _check_unique(ids: List[str], what: str) -> List[str]:
    if len(set(ids)) != len(ids):
        raise ValueError(f"{what} contains duplicate entries")
    return ids


class TechReputation(BaseModel):
    """Points balance of one holder in one tech area."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    tech_area_name: str
    points: int
    created_at: datetime


class Question(LedgerRecord):
    content_ref: str
    author_id: str
    tech_area: str
    required_endorsements: int = Field(ge=0)
    created_at: datetime


class Answer(LedgerRecord):
    content_ref: str
    author_id: str
    question_id: str
    endorsed_by: List[str] = Field(default_factory=list)
    endorsement_count: int = 0
    created_at: datetime

    @model_validator(mode="after")
    def check_endorsements(self) -> "Answer":
        _check_unique(self.endorsed_by, "endorsedBy")
        if self.endorsement_count != len(self.endorsed_by):
            raise ValueError("endorsementCount does not match endorsedBy")
        return self

    def is_endorsed_by(self, evaluator_id: str) -> bool:
        return evaluator_id in self.endorsed_by

    def add_endorsement(self, evaluator_id: str) -> None:
        _add_unique(self.endorsed_by, evaluator_id, "endorsement by", self.id)
        self.endorsement_count = len(self.endorsed_by)


class ReputationHolder(LedgerRecord):
    """Shared shape of students and evaluators: a secret hash and per-area reputation."""

    secret_hash: str
    reputations: List[TechReputation] = Field(default_factory=list)
    created_at: datetime

    @model_validator(mode="after")
    def check_reputations(self) -> "ReputationHolder":
        names = [r.tech_area_name for r in self.reputations]
        if len(set(names)) != len(names):
            raise ValueError("more than one reputation entry for a tech area")
        return self

    def reputation_for(self, tech_area: str) -> Optional[TechReputation]:
        for reputation in self.reputations:
            if reputation.tech_area_name == tech_area:
                return reputation
        return None

    def bump_reputation(self, tech_area: str, amount: int) -> TechReputation:
        if amount <= 0:
            raise InvalidArgument(f"reputation increment must be positive, got {amount}", key=self.id)
        reputation = self.reputation_for(tech_area)
        if reputation is None:
            raise NotFound(f"no reputation in tech area {tech_area!r}", key=self.id)
        reputation.points += amount
        return reputation


class Student(ReputationHolder):
    answered_question_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_answered(self) -> "Student":
        _check_unique(self.answered_question_ids, "answeredQuestionIds")
        return self

    def has_answered(self, question_id: str) -> bool:
        return question_id in self.answered_question_ids

    def record_answered_question(self, question_id: str) -> None:
        _add_unique(self.answered_question_ids, question_id, "answered question", self.id)


class Evaluator(ReputationHolder):
    evaluated_answer_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_evaluated(self) -> "Evaluator":
        _check_unique(self.evaluated_answer_ids, "evaluatedAnswerIds")
        return self

    def has_evaluated(self, answer_id: str) -> bool:
        return answer_id in self.evaluated_answer_ids

    def record_evaluated_answer(self, answer_id: str) -> None:
        _add_unique(self.evaluated_answer_ids, answer_id, "evaluated answer", self.id)


# ============= Command payloads =============

def parse_document(data: bytes) -> Optional[Any]:
    """Parse a stored value for indexing; None when it is not JSON."""
    try:
        return json.loads(data)
    except (ValueError, UnicodeDecodeError):
        return None


class QueryResult(BaseModel):
    key: str
    record: Any


class HistoryEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tx_id: str
    timestamp: datetime
    record: Any


def encode_payload(value: Any) -> bytes:
    """Serialise a command result for a Response payload."""
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True).encode("utf-8")
    if isinstance(value, list):
        return json.dumps(
            [v.model_dump(mode="json", by_alias=True) if isinstance(v, BaseModel) else v for v in value]
        ).encode("utf-8")
    return json.dumps(value).encode("utf-8")


def decode_payload(payload: bytes) -> Optional[Any]:
    if not payload:
        return None
    return json.loads(payload)
