"""
Commission engine errors.

Routes turn these into HTTP responses using ``status_code``.
"""

from fastapi import HTTPException, status


class CommissionError(Exception):
    """Base class for every error raised by the negotiation engine."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CommissionError):
    """Malformed or out-of-range input (missing counter, bad percentage)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(CommissionError):
    """Unknown commission or service id."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(CommissionError):
    """Caller does not own the commission or service."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(CommissionError):
    """Operation not legal in the commission's current state."""

    status_code = status.HTTP_409_CONFLICT


class ConcurrentUpdateError(CommissionError):
    """The commission changed between read and write."""

    status_code = status.HTTP_409_CONFLICT


def http_error(exc: CommissionError) -> HTTPException:
    """Map an engine error onto the HTTP response returned to the caller."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
