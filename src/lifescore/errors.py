"""Domain error taxonomy.

Services raise these at the point of detection; nothing inside the core
catches them. The error handler maps each family to an HTTP status and
returns the message unchanged, so every expected failure reads as a
distinct, human-readable sentence.
"""

from __future__ import annotations


class LifeScoreError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 400
    family: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(LifeScoreError):
    """No viewer identity where one is required."""

    status_code = 401
    family = "unauthenticated"


class UnauthorizedError(LifeScoreError):
    """Viewer lacks the membership, ownership or authorship the operation needs."""

    status_code = 403
    family = "unauthorized"


class NotFoundError(LifeScoreError):
    status_code = 404
    family = "not_found"


class InvariantViolationError(LifeScoreError):
    """The request contradicts a structural rule (e.g. an owner leaving their own group)."""

    status_code = 409
    family = "invariant_violation"


class ValidationError(LifeScoreError):
    """Input rejected before any write."""

    status_code = 422
    family = "validation_error"


class InvalidInviteCodeError(ValidationError):
    family = "invalid_invite_code"

    def __init__(self, message: str = "Invalid invite code") -> None:
        super().__init__(message)
