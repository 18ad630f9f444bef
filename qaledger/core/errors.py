"""
Error kinds raised by the record stores.

Every error carries the store, operation and key it concerns so a failure can
be diagnosed from the message alone. Store handlers raise these; the command
dispatcher turns them into failed responses.
"""
from typing import Dict, Optional, Type


class StoreError(Exception):
    """Base class for all store failures."""

    kind = "StoreError"

    def __init__(
        self,
        message: str,
        *,
        store: Optional[str] = None,
        operation: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.store = store
        self.operation = operation
        self.key = key

    def with_context(self, store: str, operation: str) -> "StoreError":
        """Fill in the store and operation unless already set."""
        if self.store is None:
            self.store = store
        if self.operation is None:
            self.operation = operation
        return self

    def __str__(self) -> str:
        where = ".".join(p for p in (self.store, self.operation) if p)
        if self.key is not None:
            where = f"{where}[{self.key}]"
        return f"{self.kind}: {where}: {self.message}" if where else f"{self.kind}: {self.message}"


class InvalidArgument(StoreError):
    kind = "InvalidArgument"


class AlreadyExists(StoreError):
    kind = "AlreadyExists"


class NotFound(StoreError):
    kind = "NotFound"


class DuplicateOperation(StoreError):
    kind = "DuplicateOperation"


class Unauthorized(StoreError):
    kind = "Unauthorized"


class Forbidden(StoreError):
    kind = "Forbidden"


class UpstreamFailure(StoreError):
    kind = "UpstreamFailure"


class HashingError(StoreError):
    kind = "HashingError"


class EncodingError(StoreError):
    kind = "EncodingError"


ERROR_KINDS: Dict[str, Type[StoreError]] = {
    cls.kind: cls
    for cls in (
        InvalidArgument,
        AlreadyExists,
        NotFound,
        DuplicateOperation,
        Unauthorized,
        Forbidden,
        UpstreamFailure,
        HashingError,
        EncodingError,
    )
}

# HTTP status used by the command endpoint for each kind
HTTP_STATUS: Dict[str, int] = {
    "InvalidArgument": 400,
    "Unauthorized": 401,
    "Forbidden": 403,
    "NotFound": 404,
    "AlreadyExists": 409,
    "DuplicateOperation": 409,
    "UpstreamFailure": 502,
    "HashingError": 500,
    "EncodingError": 500,
}


def error_from_kind(kind: str, message: str, **context) -> StoreError:
    """Rebuild an error of the named kind, e.g. from a collaborator's response."""
    cls = ERROR_KINDS.get(kind, UpstreamFailure)
    return cls(message, **context)
