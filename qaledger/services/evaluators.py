from typing import Dict
import logging

from qaledger.core.ledger import LedgerStub
from qaledger.models.records import Evaluator
from qaledger.services.base import Command, CredentialStore, parse_int, require_non_empty

logger = logging.getLogger(__name__)

class EvaluatorStore(CredentialStore):
    """Owns evaluator identity, credential and reputation records.

    ``recordEvaluatedAnswer`` is the authoritative one-time-use guard of the
    endorsement workflow: an evaluator can be recorded against an answer once.
    """

    record_type = Evaluator

    def build_commands(self) -> Dict[str, Command]:
        return {
            "register": Command(self.register, ("initialTechArea", "id", "secret")),
            "bumpReputation": Command(self._bump_command, ("id", "techArea", "amount")),
            "recordEvaluatedAnswer": Command(self.record_evaluated_answer, ("id", "answerId")),
            "verifyCredential": Command(self.verify_credential, ("id", "rawSecret")),
        }

    def _bump_command(self, stub, id, tech_area, amount):
        return self.bump_reputation(stub, id, tech_area, parse_int(amount, "amount", minimum=1))

    def bump_reputation(self, stub: LedgerStub, id: str, tech_area: str, amount: int) -> None:
        require_non_empty(id=id, tech_area=tech_area)
        evaluator = self.load(stub, id)
        reputation = evaluator.bump_reputation(tech_area, amount)
        self.save(stub, evaluator)
        logger.info(f"Evaluator {id} reputation in {tech_area} +{amount} = {reputation.points}")

    def record_evaluated_answer(self, stub: LedgerStub, id: str, answer_id: str) -> None:
        require_non_empty(id=id, answer_id=answer_id)
        evaluator = self.load(stub, id)
        evaluator.record_evaluated_answer(answer_id)
        self.save(stub, evaluator)
        logger.info(f"Evaluator {id} recorded as having evaluated answer {answer_id}")

    def verify_credential(self, stub: LedgerStub, id: str, raw_secret: str) -> bool:
        """Check a raw secret against the stored hash. Never returns the hash."""
        require_non_empty(id=id, raw_secret=raw_secret)
        evaluator = self.load(stub, id)
        verified = self.hasher.verify(raw_secret, evaluator.secret_hash)
        if not verified:
            logger.warning(f"Credential mismatch for evaluator {id}")
        return verified
