"""
Domain errors and their HTTP translation.

The engines report field problems as data (a field -> message mapping).
Exceptions are kept for contract violations and for the persistence
boundary refusing a record. Routes translate them with BusinessError so
internal details never reach the client.
"""
from typing import Dict, Optional
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class ClinicError(Exception):
    """Base class for all domain errors."""


class InvalidArgument(ClinicError, ValueError):
    """Caller passed a value outside the contract (unknown status, bad date)."""


class NotFound(ClinicError, LookupError):
    """A patient, prescription or inventory item does not exist."""

    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {resource_id} not found")


class Conflict(ClinicError):
    """A uniqueness constraint (SKU, barcode, prescription number) was hit."""

    def __init__(self, detail: str, field: Optional[str] = None):
        self.detail = detail
        self.field = field
        super().__init__(detail)


class ValidationFailed(ClinicError):
    """Raised by the persistence boundary when a record fails validation."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("Validation failed: " + ", ".join(sorted(self.errors)))


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        404 for a missing record.

        Example:
            if not item:
                raise BusinessError.not_found("Inventory item")
        """
        if reason:
            logger.info(f"Not found: {resource} - {reason}")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def bad_request(detail) -> HTTPException:
        """
        400 for input validation / business logic errors.

        OK to include specific details here since the caller caused the issue.
        `detail` may be a message or a field -> message mapping.
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def validation_failed(errors: Dict[str, str]) -> HTTPException:
        """400 carrying every field error so the form can render them all."""
        return BusinessError.bad_request({"message": "Validation failed", "errors": errors})

    @staticmethod
    def conflict(detail: str) -> HTTPException:
        """
        409 for resource conflicts.
        Example: "An item with this SKU already exists"
        """
        logger.info(f"Conflict: {detail}")
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """Generic 500 - logs the actual error internally, hides it from the caller."""
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=True,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )

    @staticmethod
    def from_domain(error: ClinicError) -> HTTPException:
        """Map a domain error onto the matching HTTP response."""
        if isinstance(error, NotFound):
            return BusinessError.not_found(error.resource)
        if isinstance(error, ValidationFailed):
            return BusinessError.validation_failed(error.errors)
        if isinstance(error, Conflict):
            return BusinessError.conflict(error.detail)
        if isinstance(error, InvalidArgument):
            return BusinessError.bad_request(str(error))
        return BusinessError.server_error(error)
