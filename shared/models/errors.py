"""Typed failures raised by backend clients."""


class BackendError(Exception):
    """Base class for all errors raised by a search backend."""


class DocumentNotFoundError(BackendError):
    """Raised when a document id is not present in the backend."""

    def __init__(self, document_id: str):
        super().__init__(f"Document with id {document_id} not found")
        self.document_id = document_id


class VectorizationError(BackendError):
    """Raised when text could not be turned into an embedding vector."""


class DimensionMismatchError(BackendError):
    """Raised when two vectors that must share a dimension do not.

    This is an invariant violation and is never tolerated silently.
    """

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidFilterError(BackendError, ValueError):
    """Raised when a search filter value is malformed, e.g. an unparseable date bound."""
