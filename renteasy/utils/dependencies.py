"""
FastAPI dependency injection utilities for authentication, services and the
payment gateway.
"""

from typing import Optional
from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.database import get_db
from renteasy.models.user import User, UserRole
from renteasy.services.appointment import AppointmentService
from renteasy.services.auth import AuthService
from renteasy.services.dashboard import DashboardService
from renteasy.services.listing import ListingService
from renteasy.services.notification import NotificationService
from renteasy.services.payment import PaymentService
from renteasy.services.rental import RentalService
from renteasy.services.stripe_gateway import StripeGateway, build_stripe_gateway
from renteasy.services.ticket import TicketService
from renteasy.utils.exceptions import (
    APIException,
    UnauthorizedError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    InsufficientPermissionsError
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_stripe_gateway() -> StripeGateway:
    """Stripe gateway built from settings; overridden in tests."""
    return build_stripe_gateway()


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_listing_service(db: AsyncSession = Depends(get_db)) -> ListingService:
    return ListingService(db)


async def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


async def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


async def get_appointment_service(db: AsyncSession = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


async def get_ticket_service(db: AsyncSession = Depends(get_db)) -> TicketService:
    return TicketService(db)


async def get_payment_service(
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway)
) -> PaymentService:
    return PaymentService(db, gateway)


async def get_rental_service(
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway)
) -> RentalService:
    return RentalService(db, gateway)


async def _authenticate(token: str, auth_service: AuthService) -> User:
    try:
        return await auth_service.get_current_user(token)
    except (InvalidTokenError, TokenExpiredError, InactiveUserError):
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from the bearer token.

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    return await _authenticate(credentials.credentials, auth_service)


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise InactiveUserError()

    return current_user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """Current user when a valid token is sent, otherwise None."""
    if not credentials:
        return None

    try:
        user = await auth_service.get_current_user(credentials.credentials)
    except APIException:
        return None
    return user if user.is_active else None


async def get_receipt_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token: Optional[str] = Query(None, description="Access token for links opened outside the app"),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Authenticate from the bearer header or a ``token`` query parameter.
    Receipt links are opened directly by the browser, which cannot set headers.
    """
    raw_token = credentials.credentials if credentials else token
    if not raw_token:
        raise UnauthorizedError("Authentication token required")

    user = await _authenticate(raw_token, auth_service)
    if not user.is_active:
        raise InactiveUserError()
    return user


def require_role(*roles: UserRole, allow_admin: bool = True):
    """
    Create a dependency that requires one of the given roles.

    Args:
        roles: Accepted user roles
        allow_admin: Whether admins pass regardless of role

    Returns:
        Dependency function
    """
    async def role_dependency(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.role in roles:
            return current_user
        if allow_admin and current_user.role == UserRole.ADMIN:
            return current_user

        names = " or ".join(role.value for role in roles)
        raise InsufficientPermissionsError(f"access {names} resources")

    return role_dependency


require_tenant = require_role(UserRole.TENANT)
require_landlord = require_role(UserRole.LANDLORD)
require_admin = require_role(UserRole.ADMIN)
require_tenant_or_landlord = require_role(UserRole.TENANT, UserRole.LANDLORD)
# Admins cannot act on behalf of a tenant
require_tenant_only = require_role(UserRole.TENANT, allow_admin=False)
require_paying_tenant = require_tenant_only
