"""
Exception types raised by the ingestion pipeline.

Transient network failures surface as RetryExhaustedError once the retry
budget is spent. Override, validation and store failures are fatal for the
run and carry enough detail to be printed as-is.
"""

from typing import List, Optional


class ChroniclerError(Exception):
    """Base class for all Chronicler errors."""


class FeedError(ChroniclerError):
    """The On This Day feed could not be fetched."""


class RetryExhaustedError(ChroniclerError):
    """
    Raised when every attempt of a retried request failed.

    Attributes:
        label: Correlation label of the request (method and URL)
        attempts: Number of attempts made
        status_code: Status of the last response, if one was received
    """

    def __init__(self, label: str, attempts: int, status_code: Optional[int] = None,
                 cause: Optional[BaseException] = None):
        self.label = label
        self.attempts = attempts
        self.status_code = status_code
        if status_code is not None:
            reason = f"HTTP {status_code}"
        elif cause is not None:
            reason = f"{type(cause).__name__}: {cause}"
        else:
            reason = "unknown error"
        super().__init__(f"{label} failed after {attempts} attempt(s): {reason}")


class IssueListError(ChroniclerError):
    """An error made of several human-readable issues."""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        self.issues = list(issues or [])
        super().__init__(message)


class OverrideError(IssueListError):
    """The manual override file is not valid JSON or violates its schema."""


class ValidationError(IssueListError):
    """Enriched events or the digest failed the output schema."""


class StoreError(ChroniclerError):
    """Credential resolution, store bootstrap or batch commit failed."""
