"""
LogWeave Exceptions

Only boundary conditions are errors. Field extraction, parsing, grouping and
span reconstruction report absence with None / empty results instead.
"""

from typing import Any, List, Optional


class LogWeaveError(Exception):
    """Base class for all LogWeave errors."""


class EmptyLogContentError(LogWeaveError, ValueError):
    """Log content is missing, not text, or whitespace only."""

    def __init__(self, message: str = "Missing or invalid log content"):
        super().__init__(message)


class NoMatchingLogsError(LogWeaveError, LookupError):
    """A request-id filter matched no log lines."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"No logs found for request_id={request_id}")


class InvalidAnalysisResponseError(LogWeaveError):
    """The analysis engine returned a document with the wrong shape."""

    def __init__(self, message: str = "Invalid analysis response", errors: Optional[List[Any]] = None):
        self.errors = errors or []
        super().__init__(message)


class AnalysisEngineError(LogWeaveError):
    """The analysis engine call itself failed."""
