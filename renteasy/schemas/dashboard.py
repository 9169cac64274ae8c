"""
Pydantic schemas for dashboard metrics.
"""

from pydantic import BaseModel, Field
from renteasy.schemas.common import Money


class ListingMetrics(BaseModel):
    active: int
    archived: int
    total: int


class UserMetrics(BaseModel):
    total: int = Field(..., description="Tenants plus landlords")
    tenants: int
    landlords: int


class RevenueMetrics(BaseModel):
    total_platform_fees: Money
    this_month_platform_fees: Money
    currency: str


class AdminMetricsResponse(BaseModel):
    """Platform-wide numbers for the admin dashboard."""

    listings: ListingMetrics
    users: UserMetrics
    revenue: RevenueMetrics
