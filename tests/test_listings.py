"""
Tests for listing management and search.
"""

import uuid
from decimal import Decimal

import pytest

from renteasy.models.listing import ListingStatus
from renteasy.models.payment import Payment
from renteasy.models.rental import RentalStatus
from renteasy.schemas.listing import ListingCreate, ListingSearchFilters, ListingUpdate
from renteasy.utils.exceptions import ConflictError, ForbiddenError, InsufficientPermissionsError, ListingNotFoundError
from tests.conftest import ListingFactory, auth_headers, month_offset, pay_months


def listing_payload(**overrides) -> dict:
    payload = {
        "title": "Sunny studio in Gulshan",
        "description": "Top floor studio.",
        "rent": 18000,
        "service_charge": 1000,
        "rent_start_month": "2030-01",
        "address": "Road 90, Gulshan 2, Dhaka",
        "room_type": "Studio",
        "beds": 1,
        "baths": 1,
        "amenities": ["Lift", "Generator"],
    }
    payload.update(overrides)
    return payload


class TestListingService:

    async def test_create_listing(self, listing_service, test_landlord):
        listing = await listing_service.create_listing(ListingCreate(**listing_payload()), test_landlord)

        assert listing.owner_id == test_landlord.id
        assert listing.status == ListingStatus.ACTIVE
        assert listing.rent == Decimal("18000")
        assert listing.rent_start_month == "2030-01"

    async def test_tenant_cannot_create(self, listing_service, test_tenant):
        with pytest.raises(InsufficientPermissionsError):
            await listing_service.create_listing(ListingCreate(**listing_payload()), test_tenant)

    async def test_archived_hidden_from_others(self, listing_service, archived_listing, test_landlord, test_tenant, test_admin):
        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing(archived_listing.id)
        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing(archived_listing.id, test_tenant)

        assert (await listing_service.get_listing(archived_listing.id, test_landlord)).id == archived_listing.id
        assert (await listing_service.get_listing(archived_listing.id, test_admin)).id == archived_listing.id

    async def test_only_admin_features(self, listing_service, test_listing, test_landlord, test_admin):
        with pytest.raises(ForbiddenError, match="Only administrators can feature listings"):
            await listing_service.update_listing(test_listing.id, ListingUpdate(featured=True), test_landlord)

        listing = await listing_service.update_listing(test_listing.id, ListingUpdate(featured=True), test_admin)
        assert listing.featured is True

    async def test_delete_blocked_by_active_rental(self, listing_service, test_listing, test_landlord, test_rental):
        with pytest.raises(ConflictError, match="Listing has an active rental and cannot be deleted"):
            await listing_service.delete_listing(test_listing.id, test_landlord)

    async def test_delete_blocked_by_payment_history(
        self, listing_service, payment_service, rental_repository, stripe_gateway,
        test_listing, test_landlord, test_tenant, test_rental
    ):
        await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])
        await rental_repository.update(uuid.UUID(test_rental["rental_id"]), {"status": RentalStatus.ENDED})

        with pytest.raises(ConflictError, match="payment history"):
            await listing_service.delete_listing(test_listing.id, test_landlord)

        summary = await payment_service.landlord_summary(test_landlord)
        assert summary["all_time"] == Decimal("11235")

    def test_payments_restrict_parent_deletes(self):
        foreign_keys = {fk.parent.name: fk.ondelete for fk in Payment.__table__.foreign_keys}

        assert foreign_keys == {
            "rental_id": "RESTRICT",
            "tenant_id": "RESTRICT",
            "landlord_id": "RESTRICT",
            "listing_id": "RESTRICT",
        }

    async def test_search_filters(self, listing_service, listing_repository, test_landlord):
        await ListingFactory.create_listing(listing_repository, owner_id=test_landlord.id, title="Cheap room", rent=Decimal("5000"))
        await ListingFactory.create_listing(listing_repository, owner_id=test_landlord.id, title="Lake view flat", rent=Decimal("30000"))
        await ListingFactory.create_listing(
            listing_repository, owner_id=test_landlord.id, title="Old flat", status=ListingStatus.ARCHIVED
        )

        listings, total = await listing_service.search_listings(ListingSearchFilters(min_rent=Decimal("10000")))
        assert total == 1
        assert listings[0].title == "Lake view flat"

        listings, total = await listing_service.search_listings(ListingSearchFilters(query="cheap"))
        assert [listing.title for listing in listings] == ["Cheap room"]

        listings, total = await listing_service.search_listings(ListingSearchFilters(status=ListingStatus.ARCHIVED))
        assert [listing.title for listing in listings] == ["Old flat"]


class TestListingAPI:

    async def test_create(self, async_client, test_landlord):
        response = await async_client.post("/api/listings", json=listing_payload(), headers=auth_headers(test_landlord))

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Sunny studio in Gulshan"
        assert data["rent"] == 18000.0
        assert data["service_charge"] == 1000.0
        assert data["status"] == "active"
        assert data["featured"] is False
        assert data["owner_id"] == str(test_landlord.id)

    async def test_create_requires_landlord(self, async_client, test_tenant):
        response = await async_client.post("/api/listings", json=listing_payload(), headers=auth_headers(test_tenant))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.parametrize("overrides", [
        {"rent": 0},
        {"service_charge": -1},
        {"rent_start_month": "2030-13"},
        {"title": "  "},
        {"latitude": 23.8},
    ])
    async def test_create_validation(self, async_client, test_landlord, overrides):
        response = await async_client.post(
            "/api/listings", json=listing_payload(**overrides), headers=auth_headers(test_landlord)
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_search_hides_archived(self, async_client, test_listing, archived_listing):
        response = await async_client.get("/api/listings")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["listings"][0]["id"] == str(test_listing.id)
        assert data["has_next"] is False

        response = await async_client.get("/api/listings?status=archived")
        assert [listing["id"] for listing in response.json()["listings"]] == [str(archived_listing.id)]

    async def test_search_pagination(self, async_client, listing_repository, test_landlord):
        for i in range(3):
            await ListingFactory.create_listing(listing_repository, owner_id=test_landlord.id, title=f"Flat number {i}")

        response = await async_client.get("/api/listings?page=1&page_size=2")

        data = response.json()
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert len(data["listings"]) == 2
        assert data["has_next"] is True
        assert data["has_previous"] is False

    async def test_search_invalid_rent_range(self, async_client):
        response = await async_client.get("/api/listings?min_rent=500&max_rent=100")
        assert response.status_code == 422

    async def test_my_listings(self, async_client, test_listing, archived_listing, test_landlord, other_landlord):
        response = await async_client.get("/api/listings/mine", headers=auth_headers(test_landlord))

        assert response.status_code == 200
        assert {listing["id"] for listing in response.json()} == {str(test_listing.id), str(archived_listing.id)}

        response = await async_client.get("/api/listings/mine", headers=auth_headers(other_landlord))
        assert response.json() == []

    async def test_get_archived(self, async_client, archived_listing, test_landlord):
        response = await async_client.get(f"/api/listings/{archived_listing.id}")
        assert response.status_code == 404

        response = await async_client.get(f"/api/listings/{archived_listing.id}", headers=auth_headers(test_landlord))
        assert response.status_code == 200
        assert response.json()["status"] == "archived"

    async def test_get_unknown(self, async_client):
        response = await async_client.get(f"/api/listings/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_update(self, async_client, test_listing, test_landlord, other_landlord):
        response = await async_client.put(
            f"/api/listings/{test_listing.id}",
            json={"title": "Renovated flat", "rent": 12000},
            headers=auth_headers(test_landlord)
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Renovated flat"
        assert response.json()["rent"] == 12000.0

        response = await async_client.put(
            f"/api/listings/{test_listing.id}", json={"title": "Mine now"}, headers=auth_headers(other_landlord)
        )
        assert response.status_code == 403

    async def test_update_without_fields(self, async_client, test_listing, test_landlord):
        response = await async_client.put(f"/api/listings/{test_listing.id}", json={}, headers=auth_headers(test_landlord))
        assert response.status_code == 422

    async def test_archive(self, async_client, test_listing, test_landlord):
        response = await async_client.post(f"/api/listings/{test_listing.id}/archive", headers=auth_headers(test_landlord))

        assert response.status_code == 200
        assert response.json()["status"] == "archived"

    async def test_delete(self, async_client, test_listing, test_landlord):
        response = await async_client.delete(f"/api/listings/{test_listing.id}", headers=auth_headers(test_landlord))
        assert response.status_code == 204

        response = await async_client.get(f"/api/listings/{test_listing.id}")
        assert response.status_code == 404

    async def test_delete_with_active_rental(self, async_client, test_listing, test_landlord, test_rental):
        response = await async_client.delete(f"/api/listings/{test_listing.id}", headers=auth_headers(test_landlord))

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Listing has an active rental and cannot be deleted"
