"""
Pydantic schemas for user responses.
"""

from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime
from renteasy.models.user import UserRole, VerificationStatus


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(
        ...,
        description="User's unique identifier",
        examples=["123e4567-e89b-12d3-a456-426614174000"]
    )

    email: EmailStr = Field(..., description="User's email address", examples=["tenant@example.com"])

    full_name: str = Field(..., description="User's full name", examples=["Nadia Rahman"])

    phone: Optional[str] = Field(None, description="Contact phone number")

    role: UserRole = Field(..., description="User's role", examples=["tenant"])

    verification_status: VerificationStatus = Field(
        VerificationStatus.UNVERIFIED,
        description="Identity verification state"
    )

    is_active: bool = Field(..., description="Whether the user account is active")

    created_at: datetime = Field(..., description="Account creation timestamp")

    updated_at: datetime = Field(..., description="Last update timestamp")


class UserSummary(BaseModel):
    """Minimal user information embedded in other resources."""

    id: str = Field(..., description="User's unique identifier")

    full_name: str = Field(..., description="User's full name")

    email: EmailStr = Field(..., description="User's email address")
