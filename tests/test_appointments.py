"""
Tests for viewing availability and appointments: service rules and API endpoints.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from renteasy.models.appointment import Appointment, AppointmentStatus
from renteasy.models.notification import NotificationType
from renteasy.services.appointment import parse_slot_window, split_window
from renteasy.utils.exceptions import (
    AppointmentNotFoundError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    ListingNotFoundError,
    SlotNotFoundError,
)
from tests.conftest import ListingFactory, auth_headers


def future_day(days: int = 3) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).strftime("%Y-%m-%d")


async def open_slots(appointment_service, listing, landlord, count=2, day=None, start="10:00", end="12:00"):
    return await appointment_service.create_availability(
        listing.id, landlord, day or future_day(), start, end, slot_count=count
    )


class TestSlotWindow:

    def test_parse(self):
        start, end = parse_slot_window("2025-06-14", "10:00", "11:30")

        assert start == datetime(2025, 6, 14, 10, 0, tzinfo=timezone.utc)
        assert end == datetime(2025, 6, 14, 11, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("date,start,end", [
        ("2025-13-01", "10:00", "11:00"),
        ("2025-06-14", "10am", "11:00"),
        ("", "10:00", "11:00"),
    ])
    def test_malformed(self, date, start, end):
        with pytest.raises(BadRequestError):
            parse_slot_window(date, start, end)

    def test_end_before_start(self):
        with pytest.raises(BadRequestError, match="End time must be after start time"):
            parse_slot_window("2025-06-14", "11:00", "11:00")

    def test_split_is_contiguous(self):
        start, end = parse_slot_window("2025-06-14", "10:00", "11:00")
        windows = split_window(start, end, 3)

        assert len(windows) == 3
        assert windows[0] == (start, start + timedelta(minutes=20))
        assert windows[1][0] == windows[0][1]
        assert windows[-1][1] == end


class TestAvailability:

    async def test_create_splits_window(self, appointment_service, test_listing, test_landlord):
        slots = await open_slots(appointment_service, test_listing, test_landlord, count=4)

        assert len(slots) == 4
        assert all(slot.landlord_id == test_landlord.id for slot in slots)
        assert all(slot.is_booked is False for slot in slots)

    async def test_overlap_rejected(self, appointment_service, test_listing, test_landlord):
        day = future_day()
        await open_slots(appointment_service, test_listing, test_landlord, day=day)

        with pytest.raises(ConflictError, match="Availability already exists"):
            await open_slots(appointment_service, test_listing, test_landlord, day=day, start="11:30", end="13:00")

    async def test_adjacent_window_allowed(self, appointment_service, test_listing, test_landlord):
        day = future_day()
        await open_slots(appointment_service, test_listing, test_landlord, day=day)

        slots = await open_slots(appointment_service, test_listing, test_landlord, count=1, day=day, start="12:00", end="13:00")
        assert len(slots) == 1

    async def test_slot_count_must_be_positive(self, appointment_service, test_listing, test_landlord):
        with pytest.raises(BadRequestError, match="slot_count"):
            await open_slots(appointment_service, test_listing, test_landlord, count=0)

    async def test_not_owner(self, appointment_service, test_listing, other_landlord):
        with pytest.raises(ForbiddenError):
            await open_slots(appointment_service, test_listing, other_landlord)

    async def test_unknown_listing(self, appointment_service, test_landlord):
        with pytest.raises(ListingNotFoundError):
            await appointment_service.create_availability(uuid.uuid4(), test_landlord, future_day(), "10:00", "11:00")

    async def test_listing_hides_requested_and_past_slots(
        self, appointment_service, test_listing, test_landlord, test_tenant
    ):
        day = future_day()
        first, second = await open_slots(appointment_service, test_listing, test_landlord, day=day)
        await appointment_service.request_appointment(test_listing.id, first.id, test_tenant)

        available = await appointment_service.get_availability(test_listing.id, day)
        assert [slot.id for slot in available] == [second.id]

        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).strftime("%Y-%m-%d")
        await open_slots(appointment_service, test_listing, test_landlord, day=yesterday)
        assert await appointment_service.get_availability(test_listing.id, yesterday) == []

    async def test_listing_requires_valid_date(self, appointment_service, test_listing):
        with pytest.raises(BadRequestError):
            await appointment_service.get_availability(test_listing.id, "14/06/2025")


class TestRequestAppointment:

    async def test_request_notifies_landlord(
        self, appointment_service, notification_repository, test_listing, test_landlord, test_tenant
    ):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        appointment = await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

        assert appointment.status == AppointmentStatus.REQUESTED
        assert appointment.landlord_id == test_landlord.id
        assert appointment.reschedule_count == 0

        notifications = await notification_repository.list_for_user(test_landlord.id)
        assert notifications[0].type == NotificationType.BOOKING
        assert notifications[0].title == "New viewing request"

    async def test_second_request_for_slot(
        self, appointment_service, test_listing, test_landlord, test_tenant, other_tenant
    ):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

        with pytest.raises(ConflictError, match="Slot already has an active request"):
            await appointment_service.request_appointment(test_listing.id, slot.id, other_tenant)

    async def test_slot_of_other_listing(
        self, appointment_service, listing_repository, test_listing, test_landlord, test_tenant
    ):
        other = await ListingFactory.create_listing(listing_repository, owner_id=test_landlord.id, title="Second flat")
        slot, _ = await open_slots(appointment_service, other, test_landlord)

        with pytest.raises(SlotNotFoundError):
            await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

    async def test_past_slot(self, appointment_service, test_listing, test_landlord, test_tenant):
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).strftime("%Y-%m-%d")
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord, day=yesterday)

        with pytest.raises(BadRequestError, match="no longer available"):
            await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

    async def test_booked_slot(self, appointment_service, test_listing, test_landlord, test_tenant, other_tenant):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        appointment = await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)
        await appointment_service.accept_appointment(appointment.id, test_landlord)

        with pytest.raises(ConflictError, match="already booked"):
            await appointment_service.request_appointment(test_listing.id, slot.id, other_tenant)

    async def test_concurrent_request_maps_to_conflict(
        self, appointment_service, monkeypatch, test_listing, test_landlord, test_tenant, other_tenant
    ):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        slot_id = slot.id
        listing_id = test_listing.id
        await appointment_service.request_appointment(listing_id, slot_id, test_tenant)

        async def no_active(_slot_id):
            return None

        monkeypatch.setattr(appointment_service.appointment_repo, "get_active_for_slot", no_active)
        with pytest.raises(ConflictError, match="Slot already has an active request"):
            await appointment_service.request_appointment(listing_id, slot_id, other_tenant)

    async def test_one_active_appointment_per_slot(
        self, appointment_service, db_session, test_listing, test_landlord, test_tenant, other_tenant
    ):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        values = {
            "listing_id": test_listing.id,
            "landlord_id": test_landlord.id,
            "slot_id": slot.id,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
        }
        first_tenant, second_tenant = test_tenant.id, other_tenant.id

        db_session.add(Appointment(tenant_id=first_tenant, status=AppointmentStatus.REJECTED, **values))
        db_session.add(Appointment(tenant_id=first_tenant, status=AppointmentStatus.CANCELLED, **values))
        db_session.add(Appointment(tenant_id=first_tenant, status=AppointmentStatus.ACCEPTED, **values))
        await db_session.commit()

        db_session.add(Appointment(tenant_id=second_tenant, status=AppointmentStatus.REQUESTED, **values))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()


class TestDecisions:

    async def _requested(self, appointment_service, listing, landlord, tenant):
        slot, spare = await open_slots(appointment_service, listing, landlord)
        appointment = await appointment_service.request_appointment(listing.id, slot.id, tenant)
        return appointment, slot, spare

    async def test_accept_books_slot(
        self, appointment_service, notification_repository, test_listing, test_landlord, test_tenant
    ):
        appointment, slot, _ = await self._requested(appointment_service, test_listing, test_landlord, test_tenant)

        accepted = await appointment_service.accept_appointment(appointment.id, test_landlord)
        assert accepted.status == AppointmentStatus.ACCEPTED

        refreshed = await appointment_service.slot_repo.get_by_id(slot.id, refresh=True)
        assert refreshed.is_booked is True

        notifications = await notification_repository.list_for_user(test_tenant.id)
        assert notifications[0].title == "Viewing confirmed"

    async def test_accept_twice_is_idempotent(
        self, appointment_service, notification_repository, test_listing, test_landlord, test_tenant
    ):
        appointment, _, _ = await self._requested(appointment_service, test_listing, test_landlord, test_tenant)
        await appointment_service.accept_appointment(appointment.id, test_landlord)

        again = await appointment_service.accept_appointment(appointment.id, test_landlord)
        assert again.status == AppointmentStatus.ACCEPTED
        assert await notification_repository.count_unread(test_tenant.id) == 1

    async def test_reject_releases_slot(self, appointment_service, test_listing, test_landlord, test_tenant):
        appointment, slot, _ = await self._requested(appointment_service, test_listing, test_landlord, test_tenant)

        rejected = await appointment_service.reject_appointment(appointment.id, test_landlord)
        assert rejected.status == AppointmentStatus.REJECTED

        refreshed = await appointment_service.slot_repo.get_by_id(slot.id, refresh=True)
        assert refreshed.is_booked is False
        assert slot.id in [s.id for s in await appointment_service.get_availability(test_listing.id, slot.date)]

    async def test_cannot_reject_accepted(self, appointment_service, test_listing, test_landlord, test_tenant):
        appointment, _, _ = await self._requested(appointment_service, test_listing, test_landlord, test_tenant)
        await appointment_service.accept_appointment(appointment.id, test_landlord)

        with pytest.raises(BadRequestError, match="Only requested appointments can be rejected"):
            await appointment_service.reject_appointment(appointment.id, test_landlord)

    async def test_other_landlord(self, appointment_service, test_listing, test_landlord, test_tenant, other_landlord):
        appointment, _, _ = await self._requested(appointment_service, test_listing, test_landlord, test_tenant)

        with pytest.raises(AppointmentNotFoundError):
            await appointment_service.accept_appointment(appointment.id, other_landlord)


class TestReschedule:

    async def test_reschedule_accepted_releases_old_slot(
        self, appointment_service, notification_repository, test_listing, test_landlord, test_tenant
    ):
        slot, spare = await open_slots(appointment_service, test_listing, test_landlord)
        appointment = await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)
        await appointment_service.accept_appointment(appointment.id, test_landlord)

        moved = await appointment_service.reschedule_appointment(appointment.id, spare.id, test_tenant)

        assert moved.slot_id == spare.id
        assert moved.status == AppointmentStatus.REQUESTED
        assert moved.reschedule_count == 1
        old = await appointment_service.slot_repo.get_by_id(slot.id, refresh=True)
        assert old.is_booked is False

        notifications = await notification_repository.list_for_user(test_landlord.id)
        assert notifications[0].title == "Viewing reschedule requested"

    async def test_same_slot(self, appointment_service, test_listing, test_landlord, test_tenant):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        appointment = await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

        with pytest.raises(BadRequestError, match="different slot"):
            await appointment_service.reschedule_appointment(appointment.id, slot.id, test_tenant)

    async def test_cancelled(self, appointment_service, test_listing, test_landlord, test_tenant):
        slot, spare = await open_slots(appointment_service, test_listing, test_landlord)
        appointment = await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)
        await appointment_service.appointment_repo.update(appointment.id, {"status": AppointmentStatus.CANCELLED})

        with pytest.raises(BadRequestError, match="Cancelled appointments"):
            await appointment_service.reschedule_appointment(appointment.id, spare.id, test_tenant)

    async def test_other_tenant(self, appointment_service, test_listing, test_landlord, test_tenant, other_tenant):
        slot, spare = await open_slots(appointment_service, test_listing, test_landlord)
        appointment = await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

        with pytest.raises(AppointmentNotFoundError):
            await appointment_service.reschedule_appointment(appointment.id, spare.id, other_tenant)


class TestLists:

    async def test_status_order_then_start(self, appointment_service, test_listing, test_landlord, test_tenant):
        early, middle, late = await open_slots(appointment_service, test_listing, test_landlord, count=3)
        first = await appointment_service.request_appointment(test_listing.id, early.id, test_tenant)
        await appointment_service.request_appointment(test_listing.id, late.id, test_tenant)
        third = await appointment_service.request_appointment(test_listing.id, middle.id, test_tenant)
        await appointment_service.accept_appointment(first.id, test_landlord)

        items = await appointment_service.tenant_appointments(test_tenant)

        assert [item["status"] for item in items] == ["REQUESTED", "REQUESTED", "ACCEPTED"]
        assert items[0]["id"] == str(third.id)
        assert items[0]["listing"]["title"] == test_listing.title

    async def test_upcoming_count(self, appointment_service, test_listing, test_landlord, test_tenant, other_tenant):
        first, second = await open_slots(appointment_service, test_listing, test_landlord)
        a = await appointment_service.request_appointment(test_listing.id, first.id, test_tenant)
        await appointment_service.request_appointment(test_listing.id, second.id, other_tenant)
        await appointment_service.reject_appointment(a.id, test_landlord)

        assert await appointment_service.landlord_upcoming_count(test_landlord) == 1


class TestAppointmentEndpoints:

    async def test_viewing_flow(self, async_client, test_listing, test_landlord, test_tenant):
        day = future_day()
        response = await async_client.post(
            "/api/availability",
            json={
                "listing_id": str(test_listing.id),
                "date": day,
                "start_time": "09:00",
                "end_time": "10:00",
                "slot_count": 2,
            },
            headers=auth_headers(test_landlord)
        )
        assert response.status_code == 201
        slots = response.json()["slots"]
        assert len(slots) == 2

        response = await async_client.get(
            f"/api/availability/{test_listing.id}", params={"date": day}, headers=auth_headers(test_tenant)
        )
        assert response.status_code == 200
        assert len(response.json()["slots"]) == 2

        response = await async_client.post(
            "/api/appointments/request",
            json={"listing_id": str(test_listing.id), "slot_id": slots[0]["id"]},
            headers=auth_headers(test_tenant)
        )
        assert response.status_code == 201
        appointment_id = response.json()["appointment"]["id"]

        response = await async_client.get("/api/appointments/landlord/upcoming-count", headers=auth_headers(test_landlord))
        assert response.json() == {"count": 1}

        response = await async_client.patch(
            f"/api/appointments/{appointment_id}/accept", headers=auth_headers(test_landlord)
        )
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "ACCEPTED"

        response = await async_client.get("/api/appointments/tenant", headers=auth_headers(test_tenant))
        items = response.json()["appointments"]
        assert items[0]["landlord"]["full_name"] == "Test Landlord"

    async def test_duplicate_request_is_conflict(self, async_client, appointment_service, test_listing, test_landlord, test_tenant, other_tenant):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)
        await appointment_service.request_appointment(test_listing.id, slot.id, test_tenant)

        response = await async_client.post(
            "/api/appointments/request",
            json={"listing_id": str(test_listing.id), "slot_id": str(slot.id)},
            headers=auth_headers(other_tenant)
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    async def test_landlord_cannot_request(self, async_client, appointment_service, test_listing, test_landlord):
        slot, _ = await open_slots(appointment_service, test_listing, test_landlord)

        response = await async_client.post(
            "/api/appointments/request",
            json={"listing_id": str(test_listing.id), "slot_id": str(slot.id)},
            headers=auth_headers(test_landlord)
        )
        assert response.status_code == 403

    async def test_availability_requires_date(self, async_client, test_listing, test_tenant):
        response = await async_client.get(f"/api/availability/{test_listing.id}", headers=auth_headers(test_tenant))
        assert response.status_code == 422
