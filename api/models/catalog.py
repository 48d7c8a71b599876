"""
MotoresRD - Catalog Pydantic schemas.

Brands, makes (catalog models), gallery images and import/export results.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Type Definitions
# =============================================================================

BrandType = Literal["motorcycle", "car", "truck", "both"]
MakeType = Literal[
    "Sport",
    "Naked",
    "Cruiser",
    "Adventure",
    "Touring",
    "Scooter",
    "Dual Sport",
    "Dirt Bike",
    "Classic",
    "Standard",
]
MarketPresence = Literal["Alta", "Media", "Baja"]


# =============================================================================
# Brand Schemas
# =============================================================================


class BrandCreate(BaseModel):
    """Schema for creating a brand."""

    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120, description="Generated from name when omitted")
    logo_url: str | None = Field(None, max_length=500)
    type: BrandType = "motorcycle"

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre de la marca es requerido")
        return v


class BrandUpdate(BaseModel):
    """Schema for updating a brand (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)
    logo_url: str | None = Field(None, max_length=500)
    type: BrandType | None = None


class BrandResponse(BaseModel):
    """Schema for brand response."""

    id: UUID
    name: str
    slug: str
    logo_url: str | None
    type: BrandType
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Make Schemas
# =============================================================================


class MakeBase(BaseModel):
    """Editable make fields as typed in the back-office form."""

    name: str = Field(..., min_length=1, max_length=150)
    type: MakeType | None = None
    engine_size: str | None = Field(None, max_length=50, description="e.g. '649' or '649 cc'")
    torque: str | None = Field(None, max_length=50, description="e.g. '67 Nm'")
    fuel_capacity: str | None = Field(None, max_length=50, description="e.g. '14 L'")
    cylinders: int | None = Field(None, ge=1, le=16)
    market_presence: MarketPresence | None = None
    price_range_new: str | None = Field(None, max_length=100)
    price_range_used: str | None = Field(None, max_length=100)
    importer: str | None = Field(None, max_length=150)
    country_origin: str | None = Field(None, max_length=100)
    can_import: bool = False
    key_features: str | None = None
    year_from: int | None = Field(None, ge=1900, le=2100)
    year_to: int | None = Field(None, ge=1900, le=2100)
    weight: str | None = Field(None, max_length=50)
    seat_height: str | None = Field(None, max_length=50)
    available_colors: str | None = None
    top_speed: str | None = Field(None, max_length=50)
    horsepower: str | None = Field(None, max_length=50)
    assigned_seller_id: UUID | None = Field(
        None,
        description="Dealer responsible for this model (admin only)",
    )

    @model_validator(mode="before")
    @classmethod
    def blank_strings_to_none(cls, data):
        """HTML forms send empty strings for untouched inputs."""
        if isinstance(data, dict):
            return {
                k: (None if isinstance(v, str) and not v.strip() and k != "name" else v)
                for k, v in data.items()
            }
        return data

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre del modelo es requerido")
        return v

    @model_validator(mode="after")
    def check_year_range(self) -> "MakeBase":
        if self.year_from and self.year_to and self.year_to < self.year_from:
            raise ValueError("El año final no puede ser anterior al año inicial")
        return self


class MakeCreate(MakeBase):
    """Schema for creating a make."""

    brand_id: UUID


class MakeUpdate(MakeCreate):
    """Full edit of a make; every field is rewritten."""

    pass


class MakeResponse(BaseModel):
    """Schema for make response including brand, seller and derived values."""

    id: UUID
    brand_id: UUID
    brand_name: str
    brand_slug: str
    name: str
    slug: str
    type: str | None
    engine_size: str | None
    torque: str | None
    fuel_capacity: str | None
    cylinders: int | None
    market_presence: str | None
    price_range_new: str | None
    price_range_used: str | None
    importer: str | None
    country_origin: str | None
    can_import: bool
    key_features: str | None
    year_from: int | None
    year_to: int | None
    weight: str | None
    seat_height: str | None
    available_colors: str | None
    top_speed: str | None
    horsepower: str | None
    is_highlighted: bool
    assigned_seller_id: UUID | None
    seller_name: str | None = None
    active_listings: int = 0
    price_new_min: float | None
    price_new_max: float | None
    price_used_min: float | None
    price_used_max: float | None
    torque_nm: float | None
    fuel_capacity_liters: float | None
    engine_cc: int | None
    weight_kg: float | None
    horsepower_hp: float | None
    created_at: datetime
    updated_at: datetime


class MakeListResponse(BaseModel):
    """Schema for paginated make list."""

    items: list[MakeResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class HighlightResponse(BaseModel):
    id: UUID
    is_highlighted: bool
    message: str


# =============================================================================
# Gallery & Import Schemas
# =============================================================================


class MakeImageResponse(BaseModel):
    """An image of the make gallery, addressed by its path under the gallery root."""

    path: str
    url: str
    filename: str
    color: str | None
    color_slug: str | None
    year: int | None


class MakeImageUpdate(BaseModel):
    """Move an image to another color folder and/or change its year."""

    path: str = Field(..., description="Current path under the gallery root")
    color: str = Field(..., min_length=1, max_length=60)
    year: int | None = Field(None, ge=1900, le=2100)


class CatalogImportResult(BaseModel):
    """Outcome of a catalog import or sync."""

    message: str
    counts: dict[str, int] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    error_count: int = 0
    backup_notice: str | None = None
    missing_folders: list[str] = Field(default_factory=list)
