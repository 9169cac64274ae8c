"""
Error response schemas for API documentation and consistent error formatting.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(
        None,
        description="Field name that caused the error",
        examples=["selected_months"]
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Selected months must be contiguous."]
    )

    type: Optional[str] = Field(
        None,
        description="Error type identifier",
        examples=["value_error"]
    )

    input: Optional[Any] = Field(
        None,
        description="Input value that caused the error"
    )


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", examples=["BAD_REQUEST"])

    message: str = Field(..., description="Human-readable error message")

    timestamp: str = Field(..., description="Error timestamp in ISO format")

    request_id: Optional[str] = Field(
        None,
        description="Request identifier for tracking",
        examples=["abc12345"]
    )

    details: Optional[List[ErrorDetail]] = Field(
        None,
        description="Detailed error information"
    )


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse = Field(..., description="Error information")


def _example(code: str, message: str, details: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    error = {
        "code": code,
        "message": message,
        "timestamp": "2025-01-01T00:00:00Z",
        "request_id": "abc12345",
    }
    if details:
        error["details"] = details
    return {"error": error}


COMMON_ERROR_RESPONSES = {
    400: {
        "description": "Bad Request - Invalid request or ledger rule violation",
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "examples": {
                    "bad_request": {
                        "summary": "Bad Request",
                        "value": _example("BAD_REQUEST", "Selected months must be contiguous.")
                    },
                    "due_months": {
                        "summary": "Rent Due Before Leaving",
                        "value": _example(
                            "BAD_REQUEST",
                            "Please clear due rent for 2025-03, 2025-04 before leaving.",
                            [{"field": "due_months", "message": "Months still owed", "input": ["2025-03", "2025-04"]}]
                        )
                    }
                }
            }
        }
    },
    401: {
        "description": "Unauthorized - Authentication required",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("UNAUTHORIZED", "Authentication required")}}
    },
    403: {
        "description": "Forbidden - Access denied",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("FORBIDDEN", "Access forbidden")}}
    },
    404: {
        "description": "Not Found - Resource does not exist",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("NOT_FOUND", "Rental not found")}}
    },
    409: {
        "description": "Conflict - Payment processing or duplicate resource",
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "example": _example(
                    "PAYMENT_PROCESSING",
                    "A payment is still processing. Please wait for confirmation."
                )
            }
        }
    },
    422: {
        "description": "Validation Error - Request validation failed",
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "example": _example(
                    "VALIDATION_ERROR",
                    "Request validation failed",
                    [{"field": "body -> email", "message": "value is not a valid email address", "type": "value_error"}]
                )
            }
        }
    },
    500: {
        "description": "Internal Server Error",
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "example": _example("INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later.")
            }
        }
    },
    502: {
        "description": "Bad Gateway - Payment provider request failed",
        "model": APIErrorResponse,
        "content": {
            "application/json": {
                "example": _example("PAYMENT_GATEWAY_ERROR", "Payment provider request failed")
            }
        }
    }
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Get error response schemas for specific status codes.

    Args:
        status_codes: HTTP status codes to include

    Returns:
        Dictionary of error response schemas
    """
    return {
        code: COMMON_ERROR_RESPONSES[code]
        for code in status_codes
        if code in COMMON_ERROR_RESPONSES
    }


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get authentication and authorization error response schemas."""
    return get_error_responses(401, 403)


def get_common_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get common error response schemas for most endpoints."""
    return get_error_responses(400, 401, 403, 404, 422, 500)


def get_payment_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get error response schemas for payment endpoints."""
    return get_error_responses(400, 401, 403, 404, 409, 422, 500, 502)
