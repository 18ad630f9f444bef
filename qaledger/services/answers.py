"""
Answer store and the two cross-store workflows.

Both workflows order their steps the same way: argument and read-only checks
first, then the single irrevocable call into another store, then the local
write. A failure at any step is terminal and leaves the local record untouched.
"""
from typing import Dict, List
import logging

from qaledger.core.errors import (
    AlreadyExists, DuplicateOperation, EncodingError, Forbidden, NotFound, StoreError, Unauthorized,
    UpstreamFailure, error_from_kind,
)
from qaledger.core.ledger import LedgerStub
from qaledger.models.records import Answer, Evaluator, Question, QueryResult, decode_payload
from qaledger.services.base import Command, RecordStore, parse_int, require_non_empty

logger = logging.getLogger(__name__)

# collaborator failures passed through by kind; anything else is an upstream failure
PROPAGATED_KINDS = ("NotFound", "DuplicateOperation")

class AnswerStore(RecordStore):
    record_type = Answer
    indexed_fields = ("id", "authorId", "questionId", "endorsementCount")

    def build_commands(self) -> Dict[str, Command]:
        return {
            "submit": Command(
                self.submit,
                ("questionStoreId", "studentStoreId", "id", "contentRef", "authorId", "questionId"),
            ),
            "endorse": Command(
                self.endorse,
                ("questionStoreId", "evaluatorStoreId", "answerId", "evaluatorId", "rawSecret"),
            ),
            "queryByEndorsementCount": Command(self._count_command, ("count",)),
        }

    # ============= Collaborator calls =============

    def call(self, stub: LedgerStub, store: str, function: str, *args: str) -> bytes:
        """Invoke another store; a failed reply is raised, never returned."""
        key = args[0] if args else None
        try:
            response = stub.invoke_store(store, function, args)
        except StoreError:
            raise
        except Exception as e:
            raise UpstreamFailure(f"call to {store}.{function} errored: {e}", key=key) from e
        if response.ok:
            return response.payload
        message = f"{store}.{function} failed: {response.message}"
        if response.kind in PROPAGATED_KINDS:
            raise error_from_kind(response.kind, message, key=key)
        raise UpstreamFailure(message, key=key)

    def fetch_question(self, stub: LedgerStub, question_store: str, question_id: str) -> Question:
        payload = self.call(stub, question_store, "getById", question_id)
        try:
            return Question.decode(payload, key=question_id)
        except EncodingError as e:
            raise NotFound(f"question payload from {question_store} is unreadable", key=question_id) from e

    def fetch_evaluator(self, stub: LedgerStub, evaluator_store: str, evaluator_id: str) -> Evaluator:
        payload = self.call(stub, evaluator_store, "getById", evaluator_id)
        try:
            return Evaluator.decode(payload, key=evaluator_id)
        except EncodingError as e:
            raise NotFound(f"evaluator payload from {evaluator_store} is unreadable", key=evaluator_id) from e

    # ============= Submission =============

    def submit(
        self,
        stub: LedgerStub,
        question_store_id: str,
        student_store_id: str,
        id: str,
        content_ref: str,
        author_id: str,
        question_id: str,
    ) -> None:
        require_non_empty(
            question_store_id=question_store_id, student_store_id=student_store_id, id=id,
            content_ref=content_ref, author_id=author_id, question_id=question_id,
        )
        self.fetch_question(stub, question_store_id, question_id)

        if stub.get_state(id) is not None:
            raise AlreadyExists("Answer already exists", key=id)

        answer = Answer(
            id=id,
            content_ref=content_ref,
            author_id=author_id,
            question_id=question_id,
            created_at=stub.tx_timestamp,
        )
        payload = answer.encode()

        self.call(stub, student_store_id, "recordAnsweredQuestion", author_id, question_id)

        # commit point
        stub.put_state(id, payload)
        logger.info(f"Answer {id} to question {question_id} submitted by {author_id}")

    # ============= Endorsement =============

    def endorse(
        self,
        stub: LedgerStub,
        question_store_id: str,
        evaluator_store_id: str,
        answer_id: str,
        evaluator_id: str,
        raw_secret: str,
    ) -> None:
        """Record an evaluator's thumbs-up on an answer.

        The evaluator must present the right secret and hold strictly more
        than ``ENDORSEMENT_REPUTATION_THRESHOLD`` points in the tech area of
        the answered question. Each evaluator may endorse an answer once.
        """
        require_non_empty(
            question_store_id=question_store_id, evaluator_store_id=evaluator_store_id,
            answer_id=answer_id, evaluator_id=evaluator_id, raw_secret=raw_secret,
        )
        answer = self.load(stub, answer_id)
        tech_area = self.fetch_question(stub, question_store_id, answer.question_id).tech_area
        evaluator = self.fetch_evaluator(stub, evaluator_store_id, evaluator_id)

        payload = self.call(stub, evaluator_store_id, "verifyCredential", evaluator_id, raw_secret)
        try:
            verified = decode_payload(payload)
        except ValueError:
            verified = None
        if verified is not True:
            raise Unauthorized("not authorized to perform this action", key=evaluator_id)

        threshold = self.settings.ENDORSEMENT_REPUTATION_THRESHOLD
        reputation = evaluator.reputation_for(tech_area)
        if reputation is None or reputation.points <= threshold:
            held = reputation.points if reputation is not None else "none"
            raise Forbidden(
                f"insufficient or missing reputation in {tech_area!r}: {held}, need more than {threshold}",
                key=evaluator_id,
            )

        if answer.is_endorsed_by(evaluator_id):
            raise DuplicateOperation(f"already endorsed by {evaluator_id}", key=answer_id)

        self.call(stub, evaluator_store_id, "recordEvaluatedAnswer", evaluator_id, answer_id)

        # commit point
        answer.add_endorsement(evaluator_id)
        self.save(stub, answer)
        logger.info(f"Answer {answer_id} endorsed by {evaluator_id} ({answer.endorsement_count} total)")

    # ============= Queries =============

    def _count_command(self, stub, count):
        return self.query_by_endorsement_count(stub, parse_int(count, "count", minimum=0))

    def query_by_endorsement_count(self, stub: LedgerStub, count: int) -> List[QueryResult]:
        return self.query_by_field(stub, "endorsementCount", count)
