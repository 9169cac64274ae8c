"""
Pydantic schemas for request/response validation.
"""

from .auth import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    TokenResponse,
    AccessTokenResponse,
    LoginResponse,
)
from .user import UserResponse, UserSummary
from .listing import (
    ListingCreate,
    ListingUpdate,
    ListingResponse,
    ListingSummary,
    ListingListResponse,
    ListingSearchFilters,
)
from .rental import (
    MoveOutRequest,
    RentalResponse,
    RentalLedgerResponse,
    TenantRentalListResponse,
    MoveOutDueResponse,
    StopRentalResponse,
)
from .payment import (
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentResponse,
    PaymentListResponse,
    PaymentStatusResponse,
    LandlordPaymentSummary,
)
from .notification import NotificationResponse, NotificationListResponse, UnreadCountResponse
from .dashboard import AdminMetricsResponse
from .appointment import (
    AvailabilityCreate,
    SlotResponse,
    AppointmentRequest,
    RescheduleRequest,
    AppointmentResponse,
    AppointmentListResponse,
)
from .ticket import (
    TicketCreate,
    TicketMessageCreate,
    TicketStatusUpdate,
    TicketResponse,
    TicketMessageResponse,
    TicketListResponse,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    "AccessTokenResponse",
    "LoginResponse",
    "UserResponse",
    "UserSummary",
    "ListingCreate",
    "ListingUpdate",
    "ListingResponse",
    "ListingSummary",
    "ListingListResponse",
    "ListingSearchFilters",
    "MoveOutRequest",
    "RentalResponse",
    "RentalLedgerResponse",
    "TenantRentalListResponse",
    "MoveOutDueResponse",
    "StopRentalResponse",
    "PaymentIntentCreate",
    "PaymentIntentResponse",
    "PaymentResponse",
    "PaymentListResponse",
    "PaymentStatusResponse",
    "LandlordPaymentSummary",
    "NotificationResponse",
    "NotificationListResponse",
    "UnreadCountResponse",
    "AdminMetricsResponse",
    "AvailabilityCreate",
    "SlotResponse",
    "AppointmentRequest",
    "RescheduleRequest",
    "AppointmentResponse",
    "AppointmentListResponse",
    "TicketCreate",
    "TicketMessageCreate",
    "TicketStatusUpdate",
    "TicketResponse",
    "TicketMessageResponse",
    "TicketListResponse",
]
