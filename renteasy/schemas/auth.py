"""
Pydantic schemas for authentication requests and responses.
Handles registration, login, token refresh, and current-user data.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from renteasy.models.user import UserRole
from renteasy.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Self-service registration. Admin accounts cannot be created here."""

    email: EmailStr = Field(..., description="User's email address", examples=["tenant@example.com"])

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User's password (minimum 8 characters)",
        examples=["securepassword123"]
    )

    full_name: str = Field(
        ...,
        min_length=2,
        max_length=255,
        description="User's full name",
        examples=["Nadia Rahman"]
    )

    phone: Optional[str] = Field(None, max_length=32, description="Contact phone number")

    role: UserRole = Field(
        UserRole.TENANT,
        description="Account role: tenant or landlord",
        examples=["tenant"]
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        """Validate and clean full name."""
        if not v or not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        """Validate password strength."""
        has_letter = any(c.isalpha() for c in v)
        has_number = any(c.isdigit() for c in v)

        if not has_letter:
            raise ValueError("Password must contain at least one letter")

        if not has_number:
            raise ValueError("Password must contain at least one number")

        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        """Only tenants and landlords may self-register."""
        if v not in (UserRole.TENANT, UserRole.LANDLORD):
            raise ValueError("Role must be tenant or landlord")
        return v


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(..., description="User's email address", examples=["tenant@example.com"])

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User's password (minimum 8 characters)",
        examples=["securepassword123"]
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(..., description="Valid refresh token")


class TokenResponse(BaseModel):
    """Token pair response schema."""

    access_token: str = Field(..., description="JWT access token")

    refresh_token: str = Field(..., description="JWT refresh token")

    token_type: str = Field(default="bearer", description="Token type")

    expires_in: int = Field(..., description="Access token expiration time in seconds", examples=[1800])


class AccessTokenResponse(BaseModel):
    """Access token response schema."""

    access_token: str = Field(..., description="New JWT access token")

    token_type: str = Field(default="bearer", description="Token type")

    expires_in: int = Field(..., description="Access token expiration time in seconds", examples=[1800])


class LoginResponse(TokenResponse):
    """Complete login response schema."""

    user: UserResponse = Field(..., description="Authenticated user information")
