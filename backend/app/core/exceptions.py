"""
Error taxonomy for the inventory core, plus HTTP helpers for auth failures.

Services raise ClinicError subclasses; the handlers registered in app.main
render them as JSON `{"message": ...}` with the carried status code.
Internal details (SQL errors, stack traces) are logged, never returned.
"""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class ClinicError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ClinicError):
    """Malformed quantities, prices, markups or unit names."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ClinicError):
    """Unknown drug, vendor, transaction, category, form or notification id."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class InvalidState(ClinicError):
    """A restock that is no longer pending was approved or rejected again."""

    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStock(ClinicError):
    """A decrement would drive a drug's stock below zero."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, drug_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {drug_name}: {available} available, {requested} requested"
        )
        self.available = available
        self.requested = requested


class ServerError(ClinicError):
    """Unexpected database failure. The message is deliberately generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Server error"):
        super().__init__(message)


class BusinessError:
    """Auth-layer failures with safe (non-leaky) messages."""

    @staticmethod
    def unauthorized(reason: str = "", detail: str = "Not authenticated") -> HTTPException:
        """
        Generic 401 for all authentication failures.

        Same response for wrong password, unknown user, bad token, so user
        names cannot be enumerated.
        """
        if reason:
            logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        """403 for role checks (e.g. non-admin approving a restock)."""
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> ServerError:
        """Log the real error internally and hand back a generic one."""
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=True,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)
        return ServerError()
