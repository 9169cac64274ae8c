"""
Tests for the admin dashboard metrics.
"""

from datetime import timedelta
from decimal import Decimal

from renteasy.database import utcnow
from tests.conftest import auth_headers, month_offset, pay_months


class TestDashboardService:

    async def test_empty_platform(self, dashboard_service):
        metrics = await dashboard_service.admin_metrics()

        assert metrics["listings"] == {"active": 0, "archived": 0, "total": 0}
        assert metrics["users"] == {"total": 0, "tenants": 0, "landlords": 0}
        assert metrics["revenue"]["total_platform_fees"] == Decimal("0")
        assert metrics["revenue"]["currency"] == "bdt"

    async def test_counts_and_revenue(
        self, dashboard_service, payment_service, stripe_gateway, test_tenant, test_admin, archived_listing, test_rental
    ):
        await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])

        metrics = await dashboard_service.admin_metrics()

        # The paid listing is archived while rented
        assert metrics["listings"] == {"active": 0, "archived": 2, "total": 2}
        assert metrics["users"] == {"total": 2, "tenants": 1, "landlords": 1}
        assert metrics["revenue"]["total_platform_fees"] == Decimal("210")
        assert metrics["revenue"]["this_month_platform_fees"] == Decimal("210")

    async def test_this_month_excludes_older_revenue(self, dashboard_service, payment_service, stripe_gateway, test_tenant, test_rental):
        await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])

        metrics = await dashboard_service.admin_metrics(now=utcnow() + timedelta(days=40))

        assert metrics["revenue"]["total_platform_fees"] == Decimal("210")
        assert metrics["revenue"]["this_month_platform_fees"] == Decimal("0")


class TestDashboardAPI:

    async def test_admin_metrics(self, async_client, test_admin, test_listing):
        response = await async_client.get("/api/admin/dashboard/metrics", headers=auth_headers(test_admin))

        assert response.status_code == 200
        data = response.json()
        assert data["listings"]["active"] == 1
        assert data["users"]["landlords"] == 1
        assert data["revenue"]["total_platform_fees"] == 0.0

    async def test_landlord_forbidden(self, async_client, test_landlord):
        response = await async_client.get("/api/admin/dashboard/metrics", headers=auth_headers(test_landlord))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"
