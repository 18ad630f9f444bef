from functools import lru_cache, partial
from typing import Dict, Iterable, List, Optional, Sequence
import logging

from qaledger.core.config import Settings, get_settings
from qaledger.core.database import SessionLocal
from qaledger.core.errors import UpstreamFailure
from qaledger.core.ledger import Ledger, LedgerStub, LedgerTransaction, Response
from qaledger.core.security import SecretHasher
from qaledger.services.answers import AnswerStore
from qaledger.services.base import RecordStore
from qaledger.services.evaluators import EvaluatorStore
from qaledger.services.questions import QuestionStore
from qaledger.services.students import StudentStore

logger = logging.getLogger(__name__)

class StoreRegistry:
    """Routes commands to stores.

    Each top-level ``invoke`` runs in its own ledger transaction; calls a store
    makes into another store are served inside that same transaction. A failed
    top-level command is rolled back, a successful one committed.
    """

    def __init__(self, ledger: Ledger, stores: Iterable[RecordStore]):
        self.ledger = ledger
        self.stores: Dict[str, RecordStore] = {store.name: store for store in stores}

    def has_store(self, name: str) -> bool:
        return name in self.stores

    def describe(self) -> Dict[str, List[dict]]:
        return {
            name: [{"function": fn, "params": list(cmd.params)} for fn, cmd in sorted(store.commands.items())]
            for name, store in self.stores.items()
        }

    def invoke(self, store_name: str, function: str, args: Sequence[str]) -> Response:
        with self.ledger.transaction() as tx:
            response = self.dispatch(tx, store_name, function, args)
            if not response.ok:
                tx.mark_failed()
        logger.info(f"{store_name}.{function} -> {response.status}{' ' + response.kind if response.kind else ''} (tx {tx.tx_id})")
        return response

    def dispatch(self, tx: LedgerTransaction, store_name: str, function: str, args: Sequence[str]) -> Response:
        store = self.stores.get(store_name)
        if store is None:
            return Response.failure(UpstreamFailure(f"no store named {store_name!r}", store=store_name, operation=function))
        stub = LedgerStub(tx, namespace=store.name, invoker=partial(self.dispatch, tx))
        return store.invoke(stub, function, list(args))

def build_registry(settings: Optional[Settings] = None, ledger: Optional[Ledger] = None) -> StoreRegistry:
    settings = settings or get_settings()
    ledger = ledger or Ledger(SessionLocal)
    hasher = SecretHasher(rounds=settings.BCRYPT_ROUNDS)
    return StoreRegistry(ledger, [
        QuestionStore(settings.QUESTION_STORE_NAME, settings),
        StudentStore(settings.STUDENT_STORE_NAME, settings, hasher=hasher),
        EvaluatorStore(settings.EVALUATOR_STORE_NAME, settings, hasher=hasher),
        AnswerStore(settings.ANSWER_STORE_NAME, settings),
    ])

@lru_cache()
def get_registry() -> StoreRegistry:
    """Process-wide registry over the configured database."""
    return build_registry()
