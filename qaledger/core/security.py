from passlib.context import CryptContext
from passlib.exc import MissingBackendError
import logging

from qaledger.core.errors import HashingError

logger = logging.getLogger(__name__)

class SecretHasher:
    """One-way hashing of holder secrets. Only the hash is ever persisted."""

    def __init__(self, rounds: int = 12):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, secret: str) -> str:
        try:
            return self.context.hash(secret)
        except MissingBackendError as e:
            logger.error(f"No usable bcrypt backend: {e}")
            raise HashingError(f"bcrypt backend unavailable: {e}") from e
        except (ValueError, TypeError) as e:
            raise HashingError(f"unable to hash secret: {e}") from e

    def verify(self, secret: str, hashed: str) -> bool:
        try:
            return self.context.verify(secret, hashed)
        except MissingBackendError as e:
            logger.error(f"No usable bcrypt backend: {e}")
            raise HashingError(f"bcrypt backend unavailable: {e}") from e
        except (ValueError, TypeError) as e:
            # malformed stored hash or unusable secret never verifies
            logger.warning(f"Secret verification rejected: {e}")
            return False
