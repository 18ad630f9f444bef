import json

from conftest import SECRET


def test_register_seeds_starting_reputation(record, evaluator):
    doc = record("evaluators", evaluator)
    assert doc["evaluatedAnswerIds"] == []
    assert [(r["techAreaName"], r["points"]) for r in doc["reputations"]] == [("rust", 10)]
    assert doc["secretHash"] != SECRET


def test_register_existing_id_fails(call, record, evaluator):
    before = record("evaluators", evaluator)
    assert call("evaluators", "register", "rust", "E1", "x").kind == "AlreadyExists"
    assert record("evaluators", evaluator) == before


def test_bump_reputation_adds_caller_amount(call, record, evaluator):
    assert call("evaluators", "bumpReputation", "E1", "rust", "1000").ok
    assert record("evaluators", evaluator)["reputations"][0]["points"] == 1010


def test_bump_reputation_rejects_bad_amounts(call, record, evaluator):
    assert call("evaluators", "bumpReputation", "E1", "rust", "0").kind == "InvalidArgument"
    assert call("evaluators", "bumpReputation", "E1", "rust", "-5").kind == "InvalidArgument"
    assert call("evaluators", "bumpReputation", "E1", "rust", "ten").kind == "InvalidArgument"
    assert record("evaluators", evaluator)["reputations"][0]["points"] == 10


def test_bump_reputation_missing_entry(call, evaluator):
    assert call("evaluators", "bumpReputation", "E1", "go", "5").kind == "NotFound"
    assert call("evaluators", "bumpReputation", "E9", "rust", "5").kind == "NotFound"


def test_history_tracks_every_bump(call, evaluator):
    call("evaluators", "bumpReputation", "E1", "rust", "100")
    call("evaluators", "bumpReputation", "E1", "rust", "100")
    history = json.loads(call("evaluators", "getHistory", "E1").payload)
    assert [h["record"]["reputations"][0]["points"] for h in history] == [10, 110, 210]


def test_record_evaluated_answer_is_one_time(call, record, evaluator):
    assert call("evaluators", "recordEvaluatedAnswer", "E1", "A1").ok
    assert call("evaluators", "recordEvaluatedAnswer", "E1", "A1").kind == "DuplicateOperation"
    assert call("evaluators", "recordEvaluatedAnswer", "E1", "A2").ok
    assert record("evaluators", evaluator)["evaluatedAnswerIds"] == ["A1", "A2"]


def test_verify_credential(call, evaluator):
    good = call("evaluators", "verifyCredential", "E1", SECRET)
    assert good.ok
    assert json.loads(good.payload) is True

    bad = call("evaluators", "verifyCredential", "E1", "wrong")
    assert bad.ok
    assert json.loads(bad.payload) is False


def test_verify_credential_never_reveals_hash(call, record, evaluator):
    stored = record("evaluators", evaluator)["secretHash"]
    for secret in (SECRET, "wrong"):
        response = call("evaluators", "verifyCredential", "E1", secret)
        assert stored.encode() not in response.payload


def test_verify_credential_missing_evaluator(call):
    assert call("evaluators", "verifyCredential", "E9", SECRET).kind == "NotFound"
