"""
Listing service for managing rental listings with ownership rules.
Handles landlord CRUD, archiving and public search.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.rental import RentalRepository
from renteasy.repositories.payment import PaymentRepository
from renteasy.models.listing import Listing, ListingStatus
from renteasy.models.user import User, UserRole
from renteasy.schemas.listing import ListingCreate, ListingUpdate, ListingSearchFilters
from renteasy.utils.exceptions import (
    APIException,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InsufficientPermissionsError,
    ListingNotFoundError,
    ValidationError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


class ListingService:
    """
    Listing service for landlord listing management and tenant search.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.listing_repo = ListingRepository(db_session)
        self.rental_repo = RentalRepository(db_session)
        self.payment_repo = PaymentRepository(db_session)

    async def create_listing(self, listing_data: ListingCreate, current_user: User) -> Listing:
        """
        Create a listing owned by the current landlord.

        Raises:
            InsufficientPermissionsError: If the user cannot create listings
            ForbiddenError: If the user is inactive
        """
        if not self._can_create_listing(current_user):
            raise InsufficientPermissionsError("create listings")
        if not current_user.is_active:
            raise ForbiddenError("Inactive users cannot create listings")

        try:
            create_data = listing_data.model_dump()
            create_data["owner_id"] = current_user.id
            create_data["status"] = ListingStatus.ACTIVE

            listing = await self.listing_repo.create(create_data)
            logger.info(f"Listing created by {current_user.email}: {listing.title} (ID: {listing.id})")
            return listing
        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to create listing for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create listing: {str(e)}")

    async def get_listing(self, listing_id: uuid.UUID, current_user: Optional[User] = None) -> Listing:
        """
        Get a listing. Archived listings are visible only to their owner and admins.

        Raises:
            ListingNotFoundError: If the listing doesn't exist or is hidden
        """
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))

        if not listing.is_active and not (current_user and self._can_manage_listing(listing, current_user)):
            raise ListingNotFoundError(str(listing_id))

        return listing

    async def update_listing(
        self,
        listing_id: uuid.UUID,
        listing_data: ListingUpdate,
        current_user: User
    ) -> Listing:
        """
        Update a listing with ownership validation.

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            InsufficientPermissionsError: If the user doesn't own the listing
            ValidationError: If no fields are provided
        """
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if not self._can_manage_listing(listing, current_user):
            raise InsufficientPermissionsError("update this listing")

        update_data = {k: v for k, v in listing_data.model_dump().items() if v is not None}
        if "featured" in update_data and not current_user.is_admin:
            raise ForbiddenError("Only administrators can feature listings")
        if not update_data:
            raise ValidationError("No valid fields provided for update")

        try:
            updated = await self.listing_repo.update(listing_id, update_data)
        except Exception as e:
            logger.error(f"Failed to update listing {listing_id}: {e}")
            raise BadRequestError(f"Failed to update listing: {str(e)}")

        if not updated:
            raise ListingNotFoundError(str(listing_id))

        logger.info(f"Listing updated by {current_user.email}: {listing_id}")
        return updated

    async def archive_listing(self, listing_id: uuid.UUID, current_user: User) -> Listing:
        """Withdraw a listing from search without deleting it."""
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if not self._can_manage_listing(listing, current_user):
            raise InsufficientPermissionsError("archive this listing")

        await self.listing_repo.set_status(listing_id, ListingStatus.ARCHIVED)
        logger.info(f"Listing archived by {current_user.email}: {listing_id}")
        return await self.listing_repo.get_by_id(listing_id, refresh=True)

    async def delete_listing(self, listing_id: uuid.UUID, current_user: User) -> bool:
        """
        Delete a listing that nobody is renting or has paid rent on.

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            InsufficientPermissionsError: If the user doesn't own the listing
            ConflictError: If an active rental or any payment history exists
        """
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if not self._can_manage_listing(listing, current_user):
            raise InsufficientPermissionsError("delete this listing")

        if await self.rental_repo.count_active_for_listing(listing_id) > 0:
            raise ConflictError("Listing has an active rental and cannot be deleted")
        if await self.payment_repo.count_for_listing(listing_id) > 0:
            raise ConflictError("Listing has payment history and cannot be deleted. Archive it instead")

        deleted = await self.listing_repo.delete(listing_id)
        if deleted:
            logger.info(f"Listing deleted by {current_user.email}: {listing_id}")
        return deleted

    async def get_my_listings(self, current_user: User) -> List[Listing]:
        return await self.listing_repo.get_by_owner(current_user.id)

    async def search_listings(self, filters: ListingSearchFilters) -> Tuple[List[Listing], int]:
        """
        Search listings with filtering and pagination.

        Returns:
            Tuple of (listings list, total count)
        """
        try:
            listings, total_count = await self.listing_repo.search_listings(filters)
            logger.debug(f"Listing search returned {len(listings)} of {total_count} results")
            return listings, total_count
        except Exception as e:
            logger.error(f"Failed to search listings: {e}")
            raise BadRequestError(f"Failed to search listings: {str(e)}")

    def _can_create_listing(self, user: User) -> bool:
        return user.role in (UserRole.LANDLORD, UserRole.ADMIN)

    def _can_manage_listing(self, listing: Listing, user: User) -> bool:
        """Owners and admins manage a listing."""
        return user.can_manage_listing(listing.owner_id)
