"""
Test configuration and fixtures for the RentEasy API.
Provides database fixtures, a fake Stripe gateway, test data factories and
common helpers.
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import hashlib
import hmac
import json
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import renteasy.models  # noqa: F401
from renteasy.main import app
from renteasy.database import Base, get_db
from renteasy.models.user import User, UserRole
from renteasy.models.listing import Listing, ListingStatus
from renteasy.repositories.user import UserRepository
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.rental import RentalRepository
from renteasy.repositories.payment import PaymentRepository
from renteasy.repositories.notification import NotificationRepository
from renteasy.services.appointment import AppointmentService
from renteasy.services.auth import AuthService
from renteasy.services.dashboard import DashboardService
from renteasy.services.listing import ListingService
from renteasy.services.notification import NotificationService
from renteasy.services.payment import PaymentService
from renteasy.services.rental import RentalService
from renteasy.services.stripe_gateway import IntentSnapshot, StripeGateway
from renteasy.services.ticket import TicketService
from renteasy.schemas.payment import PaymentIntentCreate
from renteasy.utils.auth import create_access_token
from renteasy.utils.dependencies import get_stripe_gateway
from renteasy.utils.months import add_months, current_month, parse_month


TEST_DATABASE_URL = "sqlite+aiosqlite://"
WEBHOOK_SECRET = "whsec_renteasy_test"
DEFAULT_PASSWORD = "testpassword123"


def month_offset(amount: int) -> str:
    """Month token relative to the current month."""
    return add_months(current_month(), amount)


def moment_in(month: str) -> datetime:
    """A timestamp in the middle of a month."""
    year, month_index = parse_month(month)
    return datetime(year, month_index + 1, 15, 12, 0, tzinfo=timezone.utc)


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


def sign_webhook(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Stripe-Signature header value for a payload."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def intent_event(event_type: str, intent: Dict[str, Any]) -> str:
    return json.dumps({
        "id": f"evt_{uuid.uuid4().hex[:12]}",
        "object": "event",
        "type": event_type,
        "data": {"object": intent},
    })


class FakeStripeGateway(StripeGateway):
    """
    In-memory PaymentIntents. Webhook signatures are still verified by the
    Stripe SDK against WEBHOOK_SECRET.
    """

    def __init__(self, configured: bool = True):
        super().__init__(
            secret_key="sk_test_renteasy" if configured else None,
            webhook_secret=WEBHOOK_SECRET,
        )
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.charge_receipts: Dict[str, str] = {}
        self.retrieved: List[str] = []

    async def create_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> IntentSnapshot:
        self._require_key()
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents[intent_id] = {
            "id": intent_id,
            "object": "payment_intent",
            "status": "processing",
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "client_secret": f"{intent_id}_secret_abc",
        }
        return IntentSnapshot.from_stripe(self.intents[intent_id])

    async def retrieve_intent(self, intent_id: str) -> IntentSnapshot:
        self._require_key()
        self.retrieved.append(intent_id)
        return IntentSnapshot.from_stripe(self.intents[intent_id])

    async def charge_receipt_url(self, charge_id: str) -> Optional[str]:
        return self.charge_receipts.get(charge_id)

    def succeed(self, intent_id: str, receipt_url: Optional[str] = "https://pay.stripe.com/receipts/test") -> Dict[str, Any]:
        charge = {"id": f"ch_{intent_id}", "object": "charge", "receipt_url": receipt_url}
        self.intents[intent_id].update(status="succeeded", latest_charge=charge)
        return self.intents[intent_id]

    def fail(self, intent_id: str, message: str = "Your card was declined.") -> Dict[str, Any]:
        self.intents[intent_id].update(status="requires_payment_method", last_payment_error={"message": message})
        return self.intents[intent_id]


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def stripe_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
async def async_client(db_session: AsyncSession, stripe_gateway: FakeStripeGateway) -> AsyncGenerator[AsyncClient, None]:
    """Async test client sharing the test session and fake gateway."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def listing_repository(db_session: AsyncSession) -> ListingRepository:
    return ListingRepository(db_session)


@pytest.fixture
def rental_repository(db_session: AsyncSession) -> RentalRepository:
    return RentalRepository(db_session)


@pytest.fixture
def payment_repository(db_session: AsyncSession) -> PaymentRepository:
    return PaymentRepository(db_session)


@pytest.fixture
def notification_repository(db_session: AsyncSession) -> NotificationRepository:
    return NotificationRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def listing_service(db_session: AsyncSession) -> ListingService:
    return ListingService(db_session)


@pytest.fixture
def notification_service(db_session: AsyncSession) -> NotificationService:
    return NotificationService(db_session)


@pytest.fixture
def dashboard_service(db_session: AsyncSession) -> DashboardService:
    return DashboardService(db_session)


@pytest.fixture
def payment_service(db_session: AsyncSession, stripe_gateway: FakeStripeGateway) -> PaymentService:
    return PaymentService(db_session, stripe_gateway)


@pytest.fixture
def rental_service(db_session: AsyncSession, stripe_gateway: FakeStripeGateway) -> RentalService:
    return RentalService(db_session, stripe_gateway)


@pytest.fixture
def appointment_service(db_session: AsyncSession) -> AppointmentService:
    return AppointmentService(db_session)


@pytest.fixture
def ticket_service(db_session: AsyncSession) -> TicketService:
    return TicketService(db_session)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        user_repo: UserRepository,
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        full_name: str = "Test User",
        role: UserRole = UserRole.TENANT,
        is_active: bool = True
    ) -> User:
        return await user_repo.create_user({
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "full_name": full_name,
            "role": role,
            "is_active": is_active
        })


class ListingFactory:
    """Factory for creating test listings."""

    @staticmethod
    def create_listing_data(
        title: str = "Bright flat near the lake",
        rent: Decimal = Decimal("10000"),
        service_charge: Decimal = Decimal("500"),
        rent_start_month: Optional[str] = None,
        address: str = "Road 5, Dhanmondi, Dhaka",
        room_type: str = "Entire Place",
        description: str = "Second floor flat with a balcony."
    ) -> dict:
        return {
            "title": title,
            "description": description,
            "rent": rent,
            "service_charge": service_charge,
            "rent_start_month": rent_start_month,
            "address": address,
            "room_type": room_type,
            "beds": 2,
            "baths": 1,
            "amenities": ["Lift"],
            "photos": [],
        }

    @staticmethod
    async def create_listing(
        listing_repo: ListingRepository,
        owner_id: uuid.UUID,
        status: ListingStatus = ListingStatus.ACTIVE,
        **overrides
    ) -> Listing:
        data = ListingFactory.create_listing_data(**overrides)
        data["owner_id"] = owner_id
        data["status"] = status
        return await listing_repo.create(data)


# Common test fixtures
@pytest.fixture
async def test_tenant(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="tenant@example.com",
        full_name="Test Tenant",
        role=UserRole.TENANT
    )


@pytest.fixture
async def other_tenant(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="other.tenant@example.com",
        full_name="Other Tenant",
        role=UserRole.TENANT
    )


@pytest.fixture
async def test_landlord(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="landlord@example.com",
        full_name="Test Landlord",
        role=UserRole.LANDLORD
    )


@pytest.fixture
async def other_landlord(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="other.landlord@example.com",
        full_name="Other Landlord",
        role=UserRole.LANDLORD
    )


@pytest.fixture
async def test_admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="admin@example.com",
        full_name="Test Admin",
        role=UserRole.ADMIN
    )


@pytest.fixture
async def inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="inactive@example.com",
        full_name="Inactive User",
        is_active=False
    )


@pytest.fixture
async def test_listing(listing_repository: ListingRepository, test_landlord: User) -> Listing:
    """Active listing whose rent starts this month."""
    return await ListingFactory.create_listing(
        listing_repository,
        owner_id=test_landlord.id,
        rent_start_month=current_month()
    )


@pytest.fixture
async def archived_listing(listing_repository: ListingRepository, test_landlord: User) -> Listing:
    return await ListingFactory.create_listing(
        listing_repository,
        owner_id=test_landlord.id,
        status=ListingStatus.ARCHIVED,
        title="Archived studio"
    )


@pytest.fixture
async def test_rental(rental_service: RentalService, test_listing: Listing, test_tenant: User) -> Dict[str, Any]:
    """Ledger view of the tenant's rental of test_listing."""
    return await rental_service.start_rental(test_listing.id, test_tenant)


# Helpers
async def open_payment(
    payment_service: PaymentService,
    tenant: User,
    rental_id: str,
    months: List[str],
    **extra
) -> Dict[str, Any]:
    """Create a payment intent and return the service result."""
    data = PaymentIntentCreate(rental_id=rental_id, selected_months=months, **extra)
    return await payment_service.create_payment_intent(data, tenant)


async def pay_months(
    payment_service: PaymentService,
    gateway: FakeStripeGateway,
    tenant: User,
    rental_id: str,
    months: List[str],
    **extra
) -> Dict[str, Any]:
    """Create a payment intent and settle it as succeeded through a status poll."""
    result = await open_payment(payment_service, tenant, rental_id, months, **extra)
    payment = await payment_service.payment_repo.get_by_id(uuid.UUID(result["payment_id"]))
    gateway.succeed(payment.stripe_payment_intent_id)
    await payment_service.refresh_status(payment.id, tenant)
    return result
