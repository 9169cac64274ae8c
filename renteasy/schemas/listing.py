"""
Pydantic schemas for listing requests and responses.
Handles listing CRUD operations, search filters, and validation.
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from renteasy.models.listing import ListingStatus
from renteasy.schemas.common import Money, MonthToken


class ListingBase(BaseModel):
    """Base listing schema with common fields."""

    title: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Listing title",
        examples=["Bright 2BR flat near Dhanmondi Lake"]
    )

    description: str = Field(
        "",
        max_length=5000,
        description="Detailed listing description"
    )

    rent: Decimal = Field(..., gt=0, description="Monthly rent", examples=[25000])

    service_charge: Decimal = Field(
        Decimal("0"),
        ge=0,
        description="Monthly service charge added to rent",
        examples=[1500]
    )

    rent_start_month: Optional[MonthToken] = Field(
        None,
        description="First rentable month (YYYY-MM)",
        examples=["2025-03"]
    )

    address: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Street address",
        examples=["Road 5, Dhanmondi, Dhaka"]
    )

    latitude: Optional[Decimal] = Field(None, ge=-90, le=90, description="Latitude coordinate")

    longitude: Optional[Decimal] = Field(None, ge=-180, le=180, description="Longitude coordinate")

    room_type: str = Field("Entire Place", max_length=64, description="Room type label")

    beds: int = Field(1, ge=0, le=50, description="Number of beds")

    baths: int = Field(1, ge=0, le=50, description="Number of bathrooms")

    amenities: List[str] = Field(default_factory=list, description="Amenity labels")

    photos: List[str] = Field(default_factory=list, description="Photo URLs")

    @field_validator("title", "address")
    @classmethod
    def strip_required_text(cls, v):
        """Reject blank text."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_coordinates(self):
        """Validate that both coordinates are provided together or both are None."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Both latitude and longitude must be provided together, or both must be None")
        return self


class ListingCreate(ListingBase):
    """Schema for creating a new listing."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Bright 2BR flat near Dhanmondi Lake",
                "description": "Second floor, lift, gas line, two balconies.",
                "rent": 25000,
                "service_charge": 1500,
                "rent_start_month": "2025-03",
                "address": "Road 5, Dhanmondi, Dhaka",
                "room_type": "Entire Place",
                "beds": 2,
                "baths": 2,
                "amenities": ["Lift", "Generator"],
            }
        }
    )


class ListingUpdate(BaseModel):
    """Schema for updating an existing listing."""

    title: Optional[str] = Field(None, min_length=3, max_length=255)

    description: Optional[str] = Field(None, max_length=5000)

    rent: Optional[Decimal] = Field(None, gt=0)

    service_charge: Optional[Decimal] = Field(None, ge=0)

    rent_start_month: Optional[MonthToken] = None

    address: Optional[str] = Field(None, min_length=3, max_length=255)

    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)

    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)

    room_type: Optional[str] = Field(None, max_length=64)

    beds: Optional[int] = Field(None, ge=0, le=50)

    baths: Optional[int] = Field(None, ge=0, le=50)

    amenities: Optional[List[str]] = None

    photos: Optional[List[str]] = None

    status: Optional[ListingStatus] = Field(None, description="Listing availability")

    featured: Optional[bool] = Field(None, description="Featured flag (admin only)")

    @model_validator(mode="after")
    def validate_coordinates(self):
        """Coordinates must be updated together."""
        if self.latitude is not None or self.longitude is not None:
            if (self.latitude is None) != (self.longitude is None):
                raise ValueError("Both latitude and longitude must be provided together, or both must be None")
        return self


class ListingResponse(BaseModel):
    """Schema for listing response."""

    id: str = Field(..., description="Listing unique identifier")
    title: str
    description: str
    rent: Money
    service_charge: Money
    rent_start_month: Optional[str] = None
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    room_type: str
    beds: int
    baths: int
    amenities: List[str] = Field(default_factory=list)
    photos: List[str] = Field(default_factory=list)
    status: ListingStatus
    featured: bool = False
    owner_id: str = Field(..., description="ID of the landlord who owns this listing")
    created_at: datetime
    updated_at: datetime


class ListingSummary(BaseModel):
    """Compact listing view embedded in rental and payment responses."""

    id: str
    title: str
    address: str
    rent: Money
    service_charge: Money = Decimal("0")
    rent_start_month: Optional[str] = None
    room_type: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    thumbnail: Optional[str] = None


class ListingListResponse(BaseModel):
    """Schema for paginated listing response."""

    listings: List[ListingResponse] = Field(..., description="List of listings")

    total: int = Field(..., description="Total number of listings matching the criteria")

    page: int = Field(..., description="Current page number")

    page_size: int = Field(..., description="Number of listings per page")

    total_pages: int = Field(..., description="Total number of pages")

    has_next: bool = Field(..., description="Whether there are more pages")

    has_previous: bool = Field(..., description="Whether there are previous pages")


class ListingSearchFilters(BaseModel):
    """Schema for listing search filters."""

    query: Optional[str] = Field(None, max_length=255, description="Text matched against title, address and description")

    min_rent: Optional[Decimal] = Field(None, ge=0, description="Minimum monthly rent")

    max_rent: Optional[Decimal] = Field(None, ge=0, description="Maximum monthly rent")

    room_type: Optional[str] = Field(None, description="Exact room type")

    status: Optional[ListingStatus] = Field(ListingStatus.ACTIVE, description="Listing status (default active)")

    owner_id: Optional[str] = Field(None, description="Restrict to one landlord")

    page: int = Field(1, ge=1, description="Page number (starts from 1)")

    page_size: int = Field(20, ge=1, le=100, description="Number of listings per page")

    @model_validator(mode="after")
    def validate_rent_range(self):
        """Validate that min rent is not greater than max rent."""
        if self.min_rent is not None and self.max_rent is not None:
            if self.min_rent > self.max_rent:
                raise ValueError("Minimum rent cannot be greater than maximum rent")
        return self
