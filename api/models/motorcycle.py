"""
MotoresRD - Rental listing Pydantic schemas.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class MotorcycleImage(BaseModel):
    """An image attached to a listing."""

    url: str
    color: str | None = None
    color_slug: str | None = None
    is_primary: bool = False


class MotorcycleFormData(BaseModel):
    """Dealer form for publishing a catalog make as a rental listing."""

    make_id: UUID = Field(..., description="Catalog make the listing is based on")
    daily_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    weekly_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    monthly_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    available: bool = True
    available_colors: list[str] | None = Field(
        None,
        description="Defaults to the colors of the catalog make",
    )


class MotorcycleUpdate(BaseModel):
    """Partial update of a listing's commercial fields."""

    daily_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    weekly_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    monthly_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    available: bool | None = None
    available_colors: list[str] | None = None
    is_highlighted: bool | None = Field(None, description="Admin only")


class MotorcycleResponse(BaseModel):
    """Schema for listing response."""

    id: UUID
    make_id: UUID | None
    owner_id: UUID
    make: str
    model: str
    slug: str
    engine_cc: int | None
    power_hp: float | None
    torque_nm: float | None
    category: str | None
    fuel_capacity_liters: float | None
    cylinders: int | None
    weight: str | None
    seat_height: str | None
    top_speed: str | None
    year_from: int | None
    year_to: int | None
    market_presence: str | None
    importer: str | None
    country_origin: str | None
    can_import: bool
    key_features: str | None
    available_colors: list[str]
    images: list[MotorcycleImage]
    daily_price: Decimal
    weekly_price: Decimal | None
    monthly_price: Decimal | None
    available: bool
    is_highlighted: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MotorcycleFilters(BaseModel):
    """Storefront search filters."""

    brand: str | None = Field(None, description="Brand name, case-insensitive")
    category: str | None = None
    min_engine_cc: int | None = Field(None, ge=0)
    max_engine_cc: int | None = Field(None, ge=0)
    min_price: Decimal | None = Field(None, ge=0)
    max_price: Decimal | None = Field(None, ge=0)
    available_from: date | None = None
    available_to: date | None = None

    @model_validator(mode="after")
    def check_ranges(self) -> "MotorcycleFilters":
        if (self.available_from is None) != (self.available_to is None):
            raise ValueError("available_from y available_to deben indicarse juntos")
        if self.available_from and self.available_to and self.available_to < self.available_from:
            raise ValueError("El rango de fechas es inválido")
        return self


class MotorcyclePage(BaseModel):
    """Keyset-paginated listing page."""

    items: list[MotorcycleResponse]
    next_cursor: str | None = None


class PrimaryImageRequest(BaseModel):
    url: str
