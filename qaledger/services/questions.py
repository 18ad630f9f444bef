from typing import Dict
import logging

from qaledger.core.ledger import LedgerStub
from qaledger.models.records import Question
from qaledger.services.base import Command, RecordStore, parse_int, require_non_empty

logger = logging.getLogger(__name__)

class QuestionStore(RecordStore):
    """Owns question records. Questions are immutable once submitted."""

    record_type = Question
    indexed_fields = ("id", "authorId", "techArea")

    def build_commands(self) -> Dict[str, Command]:
        return {
            "submit": Command(
                self._submit_command,
                ("id", "contentRef", "authorId", "techArea", "requiredEndorsements"),
            ),
        }

    def _submit_command(self, stub, id, content_ref, author_id, tech_area, required_endorsements):
        required = parse_int(required_endorsements, "requiredEndorsements", minimum=0)
        return self.submit(stub, id, content_ref, author_id, tech_area, required)

    def submit(
        self,
        stub: LedgerStub,
        id: str,
        content_ref: str,
        author_id: str,
        tech_area: str,
        required_endorsements: int,
    ) -> None:
        require_non_empty(id=id, content_ref=content_ref, author_id=author_id, tech_area=tech_area)
        question = Question(
            id=id,
            content_ref=content_ref,
            author_id=author_id,
            tech_area=tech_area,
            required_endorsements=required_endorsements,
            created_at=stub.tx_timestamp,
        )
        self.create(stub, question)
        logger.info(f"Question {id} submitted by {author_id} in {tech_area}")
