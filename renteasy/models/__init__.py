"""
Database models for the RentEasy API.
Includes User, Listing, Rental, Payment, Notification, appointment and
support ticket models.
"""

from renteasy.models.user import User, UserRole, VerificationStatus
from renteasy.models.listing import Listing, ListingStatus
from renteasy.models.rental import Rental, RentalStatus
from renteasy.models.payment import Payment, PaymentStatus
from renteasy.models.notification import Notification, NotificationType
from renteasy.models.availability import AvailabilitySlot
from renteasy.models.appointment import Appointment, AppointmentStatus
from renteasy.models.ticket import Ticket, TicketMessage, TicketPriority, TicketStatus, TicketType

__all__ = [
    "User",
    "UserRole",
    "VerificationStatus",
    "Listing",
    "ListingStatus",
    "Rental",
    "RentalStatus",
    "Payment",
    "PaymentStatus",
    "Notification",
    "NotificationType",
    "AvailabilitySlot",
    "Appointment",
    "AppointmentStatus",
    "Ticket",
    "TicketMessage",
    "TicketPriority",
    "TicketStatus",
    "TicketType",
]
