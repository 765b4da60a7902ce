"""
Error types for the report engine.

Validation problems are raised before any remote call; remote problems abort the
fetch that raised them. Nothing here is retried automatically.
"""

from __future__ import annotations

import re
from typing import Any, Optional

TIMEOUT_PATTERN = re.compile(r"statement timeout", re.IGNORECASE)

TIMEOUT_MESSAGES = {
    "movement": "Query timed out. Try narrowing the date range or fewer products.",
    "as_of": "Query timed out. Try fewer products or a shorter range.",
}
GENERIC_MESSAGE = "Something went wrong"


class ReportError(Exception):
    """Base exception for all report engine errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ReportError):
    """A required selection is empty."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else {},
        )


class RemoteQueryError(ReportError):
    """A chunk call to the data source failed."""


class QueryTimeoutError(RemoteQueryError):
    """The data source cancelled the statement for running too long."""


class ConfigurationError(ReportError):
    """Invalid application setting."""


def is_statement_timeout(message: str) -> bool:
    return bool(TIMEOUT_PATTERN.search(message or ""))


def classify_remote_error(exc: BaseException) -> RemoteQueryError:
    if isinstance(exc, RemoteQueryError):
        return exc
    message = str(exc) or exc.__class__.__name__
    if is_statement_timeout(message):
        return QueryTimeoutError(message, code="STATEMENT_TIMEOUT")
    return RemoteQueryError(message, code="REMOTE_QUERY_FAILED")


def user_message(exc: BaseException, kind: str = "movement") -> str:
    """Inline message shown in place of the report."""
    message = str(exc or "").strip()
    if isinstance(exc, QueryTimeoutError) or is_statement_timeout(message):
        return TIMEOUT_MESSAGES.get(kind, TIMEOUT_MESSAGES["movement"])
    return message or GENERIC_MESSAGE
