"""
Exceptions raised by the document-store layer.

A missing document is not an error: get_one() returns a snapshot with
exists == False. Only malformed references/queries and backend failures
raise.
"""

from typing import Optional

from postgrest.exceptions import APIError


class DocumentStoreError(Exception):
    """Base class for all document-store errors."""


class InvalidReferenceError(DocumentStoreError, ValueError):
    """
    A reference or query was malformed.

    Raised before any backend call is attempted (empty path segment,
    wrong segment parity, unknown operator, non-positive limit).
    """


class BackendError(DocumentStoreError):
    """
    A Supabase/PostgREST call failed.

    The original client exception is chained as __cause__; code carries
    the PostgREST/Postgres error code when there is one.
    """

    def __init__(self, operation: str, path: str, message: str = "", code: Optional[str] = None):
        self.operation = operation
        self.path = path
        self.code = code
        detail = f": {message}" if message else ""
        super().__init__(f"{operation} failed for {path}{detail}")

    @classmethod
    def wrap(cls, operation: str, path: str, error: Exception) -> "BackendError":
        """Build a BackendError from whatever the Supabase client raised."""
        if isinstance(error, APIError):
            return cls(operation, path, error.message or str(error), error.code)
        return cls(operation, path, str(error))
