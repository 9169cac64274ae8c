"""
Custom exception classes for the RentEasy API.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.extra = extra or {}


class ValidationError(APIException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ConflictError(APIException):
    """Resource conflict exception."""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST",
            extra=extra
        )


class InternalServerError(APIException):
    """Internal server error exception."""

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="INTERNAL_SERVER_ERROR"
        )


# Authentication specific exceptions
class InvalidCredentialsError(UnauthorizedError):
    """Invalid login credentials exception."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class TokenExpiredError(UnauthorizedError):
    """JWT token expired exception."""

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    """Invalid JWT token exception."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class InactiveUserError(ForbiddenError):
    """Inactive user account exception."""

    def __init__(self, detail: str = "User account is inactive"):
        super().__init__(detail)


class InsufficientPermissionsError(ForbiddenError):
    """Insufficient permissions exception."""

    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


class DuplicateResourceError(ConflictError):
    """Duplicate resource exception."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' already exists")


# Listing and rental exceptions
class ListingNotFoundError(NotFoundError):
    """Listing not found exception."""

    def __init__(self, listing_id: Optional[str] = None):
        super().__init__("Listing", listing_id)


class RentalNotFoundError(NotFoundError):
    """Rental not found exception."""

    def __init__(self, rental_id: Optional[str] = None):
        super().__init__("Rental", rental_id)


# Viewing and support exceptions
class SlotNotFoundError(NotFoundError):
    """Availability slot not found exception."""

    def __init__(self, slot_id: Optional[str] = None):
        super().__init__("Availability slot", slot_id)


class AppointmentNotFoundError(NotFoundError):
    """Appointment not found exception."""

    def __init__(self, appointment_id: Optional[str] = None):
        super().__init__("Appointment", appointment_id)


class TicketNotFoundError(NotFoundError):
    """Ticket not found exception."""

    def __init__(self, ticket_id: Optional[str] = None):
        super().__init__("Ticket", ticket_id)


class MonthSelectionError(BadRequestError):
    """Rejected rent month selection."""

    def __init__(self, detail: str, due_months: Optional[List[str]] = None):
        extra = {"due_months": due_months} if due_months is not None else None
        super().__init__(detail, extra=extra)
        self.due_months = due_months


# Payment exceptions
class PaymentNotFoundError(NotFoundError):
    """Payment not found exception."""

    def __init__(self, payment_id: Optional[str] = None):
        super().__init__("Payment", payment_id)


class ReceiptNotAvailableError(APIException):
    """Payment has no receipt yet."""

    def __init__(self, detail: str = "Receipt not available yet."):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class PaymentProcessingError(ConflictError):
    """A payment covering the requested months is still processing."""

    def __init__(self, detail: str = "A payment is still processing. Please wait for confirmation."):
        super().__init__(detail, error_code="PAYMENT_PROCESSING")


class PaymentConfigurationError(InternalServerError):
    """Payment provider is not configured."""

    def __init__(self, detail: str = "Stripe is not configured."):
        super().__init__(detail)


class PaymentGatewayError(APIException):
    """Payment provider call failed."""

    def __init__(self, detail: str = "Payment provider request failed"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="PAYMENT_GATEWAY_ERROR"
        )


class WebhookSignatureError(BadRequestError):
    """Webhook payload could not be verified."""

    def __init__(self, detail: str):
        super().__init__(f"Webhook error: {detail}")

