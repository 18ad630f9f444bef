"""Answer workflows against scripted collaborators instead of real stores."""
from datetime import datetime, timezone

import pytest

from qaledger.core.errors import DuplicateOperation, InvalidArgument, NotFound
from qaledger.core.ledger import LedgerStub, Response
from qaledger.models.records import Answer, Evaluator, Question, TechReputation
from qaledger.services.answers import AnswerStore

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)

QUESTION = Question(
    id="Q1", content_ref="cid", author_id="author", tech_area="rust", required_endorsements=1, created_at=NOW,
)
EVALUATOR = Evaluator(
    id="E1",
    secret_hash="$2b$04$unused",
    reputations=[TechReputation(tech_area_name="rust", points=5000, created_at=NOW)],
    created_at=NOW,
)


class ScriptedStores:
    """Answers collaborator calls from a table and records what was asked."""

    def __init__(self, **overrides):
        self.calls = []
        self.replies = {
            ("questions", "getById"): Response.success(QUESTION.encode()),
            ("evaluators", "getById"): Response.success(EVALUATOR.encode()),
            ("evaluators", "verifyCredential"): Response.success(b"true"),
            ("evaluators", "recordEvaluatedAnswer"): Response.success(),
            ("students", "recordAnsweredQuestion"): Response.success(),
        }
        for name, reply in overrides.items():
            store, function = name.split("__")
            self.replies[(store, function)] = reply

    def __call__(self, store, function, args):
        self.calls.append((store, function, list(args)))
        reply = self.replies[(store, function)]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def store(settings):
    return AnswerStore("answers", settings)


@pytest.fixture
def run(ledger, store):
    """Run one command against the answer store with the given collaborators."""
    def _run(invoker, function, *args, seed=True):
        with ledger.transaction() as tx:
            stub = LedgerStub(tx, "answers", invoker=invoker)
            if seed:
                stub.put_state("A1", Answer(
                    id="A1", content_ref="cid", author_id="S1", question_id="Q1", created_at=NOW,
                ).encode())
            response = store.invoke(stub, function, list(args))
            stored = stub.get_state("A1")
        return response, Answer.decode(stored, key="A1") if stored else None
    return _run


def endorse_args():
    return ("questions", "evaluators", "A1", "E1", "pw")


def test_endorse_calls_collaborators_in_order(run):
    stores = ScriptedStores()
    response, answer = run(stores, "endorse", *endorse_args())
    assert response.ok
    assert answer.endorsed_by == ["E1"]
    assert [c[:2] for c in stores.calls] == [
        ("questions", "getById"),
        ("evaluators", "getById"),
        ("evaluators", "verifyCredential"),
        ("evaluators", "recordEvaluatedAnswer"),
    ]
    assert stores.calls[-1][2] == ["E1", "A1"]


def test_evaluator_side_duplicate_leaves_answer_alone(run):
    stores = ScriptedStores(evaluators__recordEvaluatedAnswer=Response.failure(DuplicateOperation("seen")))
    response, answer = run(stores, "endorse", *endorse_args())
    assert response.kind == "DuplicateOperation"
    assert answer.endorsement_count == 0
    assert answer.endorsed_by == []


def test_unreadable_question_payload_is_not_found(run):
    stores = ScriptedStores(questions__getById=Response.success(b"{not json"))
    response, answer = run(stores, "endorse", *endorse_args())
    assert response.kind == "NotFound"
    assert answer.endorsement_count == 0
    assert ("evaluators", "recordEvaluatedAnswer") not in [c[:2] for c in stores.calls]


def test_collaborator_that_raises_is_upstream_failure(run):
    stores = ScriptedStores(evaluators__verifyCredential=ConnectionError("peer went away"))
    response, answer = run(stores, "endorse", *endorse_args())
    assert response.kind == "UpstreamFailure"
    assert "peer went away" in response.message
    assert answer.endorsement_count == 0


def test_other_collaborator_failures_become_upstream_failure(run):
    stores = ScriptedStores(evaluators__recordEvaluatedAnswer=Response.failure(InvalidArgument("bad")))
    response, answer = run(stores, "endorse", *endorse_args())
    assert response.kind == "UpstreamFailure"
    assert answer.endorsed_by == []


def test_non_boolean_verification_is_unauthorized(run):
    stores = ScriptedStores(evaluators__verifyCredential=Response.success(b'"yes"'))
    response, _ = run(stores, "endorse", *endorse_args())
    assert response.kind == "Unauthorized"


def test_submit_writes_nothing_when_student_store_refuses(run):
    stores = ScriptedStores(students__recordAnsweredQuestion=Response.failure(NotFound("no such student")))
    response, answer = run(stores, "submit", "questions", "students", "A1", "cid", "S1", "Q1", seed=False)
    assert response.kind == "NotFound"
    assert answer is None


def test_submit_checks_question_before_student(run):
    stores = ScriptedStores(questions__getById=Response.failure(NotFound("no such question")))
    response, answer = run(stores, "submit", "questions", "students", "A1", "cid", "S1", "Q1", seed=False)
    assert response.kind == "NotFound"
    assert answer is None
    assert [c[:2] for c in stores.calls] == [("questions", "getById")]


def test_stub_without_invoker_is_upstream_failure(ledger, store):
    with ledger.transaction() as tx:
        stub = LedgerStub(tx, "answers")
        response = store.invoke(stub, "submit", ["questions", "students", "A1", "cid", "S1", "Q1"])
    assert response.kind == "UpstreamFailure"


def test_garbled_verification_is_unauthorized(run):
    stores = ScriptedStores(evaluators__verifyCredential=Response.success(b"\xff\xfe"))
    response, answer = run(stores, "endorse", *endorse_args())
    assert response.kind == "Unauthorized"
    assert answer.endorsed_by == []
