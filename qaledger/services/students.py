from typing import Dict
import logging

from qaledger.core.ledger import LedgerStub
from qaledger.models.records import Student
from qaledger.services.base import Command, CredentialStore, require_non_empty

logger = logging.getLogger(__name__)

class StudentStore(CredentialStore):
    """Owns student identity and reputation records."""

    record_type = Student

    def build_commands(self) -> Dict[str, Command]:
        return {
            "register": Command(self.register, ("initialTechArea", "id", "secret")),
            "bumpReputation": Command(self.bump_reputation, ("id", "techArea")),
            "recordAnsweredQuestion": Command(self.record_answered_question, ("id", "questionId")),
        }

    def bump_reputation(self, stub: LedgerStub, id: str, tech_area: str) -> None:
        """Add the fixed student increment; reputation entries are never created here."""
        require_non_empty(id=id, tech_area=tech_area)
        student = self.load(stub, id)
        reputation = student.bump_reputation(tech_area, self.settings.STUDENT_REPUTATION_INCREMENT)
        self.save(stub, student)
        logger.info(f"Student {id} reputation in {tech_area} now {reputation.points}")

    def record_answered_question(self, stub: LedgerStub, id: str, question_id: str) -> None:
        require_non_empty(id=id, question_id=question_id)
        student = self.load(stub, id)
        student.record_answered_question(question_id)
        self.save(stub, student)
        logger.info(f"Student {id} answered question {question_id}")
