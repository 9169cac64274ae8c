"""
Repository layer over the async SQLAlchemy session.
"""

from renteasy.repositories.base import BaseRepository
from renteasy.repositories.user import UserRepository
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.rental import RentalRepository
from renteasy.repositories.payment import PaymentRepository
from renteasy.repositories.notification import NotificationRepository
from renteasy.repositories.availability import AvailabilitySlotRepository
from renteasy.repositories.appointment import AppointmentRepository
from renteasy.repositories.ticket import TicketRepository, TicketMessageRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "ListingRepository",
    "RentalRepository",
    "PaymentRepository",
    "NotificationRepository",
    "AvailabilitySlotRepository",
    "AppointmentRepository",
    "TicketRepository",
    "TicketMessageRepository",
]
