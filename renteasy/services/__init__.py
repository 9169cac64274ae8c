"""
Service layer for business logic implementation.
Contains services for authentication, listings, rentals, payments, viewings, support tickets and error handling.
"""

from .auth import AuthService
from .listing import ListingService
from .notification import NotificationService
from .payment import PaymentService
from .rental import RentalService
from .dashboard import DashboardService
from .appointment import AppointmentService
from .ticket import TicketService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "ListingService",
    "NotificationService",
    "PaymentService",
    "RentalService",
    "DashboardService",
    "AppointmentService",
    "TicketService",
    "ErrorHandlerService",
]
