"""Typed failures surfaced by the lifecycle, scoring and ranking engines.

Every error carries a stable ``code`` that the HTTP layer echoes back so the
front-end can tell a lost race (``conflict``) from an illegal action
(``invalid_transition``) without parsing messages.
"""

from __future__ import annotations


class CivicError(Exception):
    """Base class for all domain failures."""

    code = "civic_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CivicError):
    """Bad input to an operation, e.g. an empty escalation reason."""

    code = "validation_error"


class InvalidTransition(CivicError):
    """The requested transition is not legal from the issue's current state."""

    code = "invalid_transition"


class Conflict(CivicError):
    """A concurrent write changed the record first; re-read and retry."""

    code = "conflict"


class NotFound(CivicError):
    """Referenced issue, worker or post does not exist."""

    code = "not_found"


class DataUnavailable(CivicError):
    """The backing store failed to answer a query."""

    code = "data_unavailable"


class Timeout(CivicError, TimeoutError):
    """A store or gateway call exceeded its deadline."""

    code = "timeout"


class Forbidden(CivicError):
    """The actor is not allowed to act on this record."""

    code = "forbidden"
