"""Domain errors raised by the review services.

The HTTP layer maps each class to a status code and a machine-readable
``code`` so clients can tell "someone else already handled this" (conflict)
apart from a malformed request (invalid).
"""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400
    code = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ReviewError):
    """The target row is absent, outside the caller's variant, or not in the queried state."""

    status_code = 404
    code = "not_found"


class ConflictError(ReviewError):
    """A status precondition did not hold when the write was attempted."""

    status_code = 409
    code = "conflict"


class ForbiddenError(ReviewError):
    status_code = 403
    code = "forbidden"


class SubmissionValidationError(ReviewError, ValueError):
    """Malformed or rule-breaking input (bad URL, closed gate, legacy level...)."""

    status_code = 400
    code = "invalid"
