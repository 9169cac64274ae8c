"""
Authentication API endpoints for registration, login, token refresh and the current user.
"""

from fastapi import APIRouter, Depends, status
from renteasy.config import settings
from renteasy.models.user import User
from renteasy.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
)
from renteasy.schemas.error import get_auth_error_responses, get_error_responses
from renteasy.schemas.user import UserResponse
from renteasy.services.auth import AuthService
from renteasy.utils.dependencies import get_auth_service, get_current_active_user
from renteasy.utils.exceptions import APIException, InvalidCredentialsError, InvalidTokenError


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a tenant or landlord account",
    responses=get_error_responses(403, 409, 422)
)
async def register(
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.register(register_data)
    return UserResponse.model_validate(user.to_dict())


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns JWT tokens",
    responses=get_auth_error_responses()
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    try:
        user, access_token, refresh_token = await auth_service.login(
            email=login_data.email,
            password=login_data.password
        )
    except APIException:
        raise
    except Exception:
        raise InvalidCredentialsError()

    return LoginResponse(
        user=UserResponse.model_validate(user.to_dict()),
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Generate new access token using refresh token",
    responses=get_auth_error_responses()
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AccessTokenResponse:
    try:
        access_token = await auth_service.refresh_access_token(refresh_data.refresh_token)
    except APIException:
        raise
    except Exception:
        raise InvalidTokenError("Failed to refresh token")

    return AccessTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    responses=get_auth_error_responses()
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())
