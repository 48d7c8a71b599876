"""
MotoresRD - Database models.

This module defines SQLAlchemy ORM models for the application.
All models use UUIDs as primary keys and include timestamps.

Relations:
    Brand 1-N Make 1-N Motorcycle 1-N Booking
    User (dealer) 1-N Motorcycle, User (customer) 1-N Booking
    Motorcycle 1-N BlockedDate
"""

import uuid
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# =============================================================================
# Users & Authentication
# =============================================================================


class User(Base):
    """
    User model - customers, dealers and administrators.

    Dealers own rental listings and carry business contact data.
    Customers book listings. Admins manage the catalog.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Lowercased login email",
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt password hash",
    )
    display_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        default="customer",
        nullable=False,
        index=True,
        comment="Role: admin, dealer or customer",
    )
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    business_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    business_address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    business_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    # Relationships
    access_logs: Mapped[list["AccessLog"]] = relationship(
        "AccessLog",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'dealer', 'customer')", name="ck_users_role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class AccessLog(Base):
    """
    Access log - login, logout and failed login attempts.
    """

    __tablename__ = "access_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Action: login, logout, login_failed",
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )

    user: Mapped["User"] = relationship("User", back_populates="access_logs")

    def __repr__(self) -> str:
        return f"<AccessLog(id={self.id}, user_id={self.user_id}, action={self.action})>"


# =============================================================================
# Catalog
# =============================================================================


class Brand(Base):
    """
    Brand model - vehicle manufacturer (Yamaha, Honda, Suzuki...).
    """

    __tablename__ = "brands"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    type: Mapped[str] = mapped_column(
        String(20),
        default="motorcycle",
        nullable=False,
        comment="Vehicle type: motorcycle, car, truck or both",
    )
    legacy_id: Mapped[int | None] = mapped_column(
        Integer,
        unique=True,
        nullable=True,
        comment="Numeric id of the brand in legacy SQL dumps",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    makes: Mapped[list["Make"]] = relationship(
        "Make",
        back_populates="brand",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<Brand(id={self.id}, slug={self.slug})>"


class Make(Base):
    """
    Make model - a catalog model of a brand (e.g. Yamaha MT-07).

    Spec fields are stored as typed-in text ("74 Nm", "14 L") together with
    derived numeric columns recomputed on every write for filtering.
    """

    __tablename__ = "makes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    brand_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("brands.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(180), nullable=False)
    type: Mapped[str | None] = mapped_column(
        String(30),
        nullable=True,
        comment="Sport, Naked, Cruiser, Adventure, Touring, Scooter, Dual Sport, Dirt Bike, Classic, Standard",
    )

    # Free-text specs
    engine_size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    torque: Mapped[str | None] = mapped_column(String(50), nullable=True)
    fuel_capacity: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cylinders: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight: Mapped[str | None] = mapped_column(String(50), nullable=True)
    seat_height: Mapped[str | None] = mapped_column(String(50), nullable=True)
    top_speed: Mapped[str | None] = mapped_column(String(50), nullable=True)
    horsepower: Mapped[str | None] = mapped_column(String(50), nullable=True)
    available_colors: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Comma separated color names",
    )
    key_features: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Market data
    market_presence: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        comment="Alta, Media or Baja",
    )
    price_range_new: Mapped[str | None] = mapped_column(String(100), nullable=True)
    price_range_used: Mapped[str | None] = mapped_column(String(100), nullable=True)
    importer: Mapped[str | None] = mapped_column(String(150), nullable=True)
    country_origin: Mapped[str | None] = mapped_column(String(100), nullable=True)
    can_import: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    year_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_highlighted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    assigned_seller_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Derived numeric columns
    price_new_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_new_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_used_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_used_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    torque_nm: Mapped[float | None] = mapped_column(Float, nullable=True)
    fuel_capacity_liters: Mapped[float | None] = mapped_column(Float, nullable=True)
    engine_cc: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    horsepower_hp: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    brand: Mapped["Brand"] = relationship("Brand", back_populates="makes", lazy="joined")
    assigned_seller: Mapped["User | None"] = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("brand_id", "slug", name="uq_makes_brand_slug"),
        Index("ix_makes_brand_name", "brand_id", "name"),
    )

    def __repr__(self) -> str:
        return f"<Make(id={self.id}, slug={self.slug})>"


# =============================================================================
# Rental listings, bookings & availability
# =============================================================================


class Motorcycle(Base):
    """
    Motorcycle model - a dealer's rental listing.

    Specs are copied from the catalog make when the listing is created so the
    listing survives later catalog edits or deletion of the make.
    """

    __tablename__ = "motorcycles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    make_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("makes.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    make: Mapped[str] = mapped_column(String(100), nullable=False, comment="Brand name")
    model: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    engine_cc: Mapped[int | None] = mapped_column(Integer, nullable=True)
    power_hp: Mapped[float | None] = mapped_column(Float, nullable=True)
    torque_nm: Mapped[float | None] = mapped_column(Float, nullable=True)
    category: Mapped[str | None] = mapped_column(String(30), nullable=True, index=True)
    fuel_capacity_liters: Mapped[float | None] = mapped_column(Float, nullable=True)
    cylinders: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight: Mapped[str | None] = mapped_column(String(50), nullable=True)
    seat_height: Mapped[str | None] = mapped_column(String(50), nullable=True)
    top_speed: Mapped[str | None] = mapped_column(String(50), nullable=True)
    year_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    market_presence: Mapped[str | None] = mapped_column(String(10), nullable=True)
    importer: Mapped[str | None] = mapped_column(String(150), nullable=True)
    country_origin: Mapped[str | None] = mapped_column(String(100), nullable=True)
    can_import: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    key_features: Mapped[str | None] = mapped_column(Text, nullable=True)
    available_colors: Mapped[list[str]] = mapped_column(
        JSONB,
        default=list,
        nullable=False,
    )
    images: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        default=list,
        nullable=False,
        comment="List of {url, color, color_slug, is_primary}",
    )

    daily_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    weekly_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    monthly_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    is_highlighted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    owner: Mapped["User"] = relationship("User", lazy="joined")

    __table_args__ = (
        CheckConstraint("daily_price > 0", name="ck_motorcycles_daily_price_positive"),
    )

    def __repr__(self) -> str:
        return f"<Motorcycle(id={self.id}, slug={self.slug})>"


class Booking(Base):
    """
    Booking model - a customer's rental of a listing for an inclusive date range.

    Lifecycle: pending -> confirmed -> in_progress -> completed, with
    cancelled/rejected as terminal exits.
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    motorcycle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("motorcycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deposit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        nullable=False,
        index=True,
    )
    customer_name: Mapped[str] = mapped_column(String(150), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    pickup_location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    dropoff_location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    motorcycle: Mapped["Motorcycle"] = relationship("Motorcycle", lazy="joined")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_bookings_date_order"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled', 'rejected')",
            name="ck_bookings_status",
        ),
        Index("ix_bookings_motorcycle_dates", "motorcycle_id", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, {self.start_date}..{self.end_date})>"


class BlockedDate(Base):
    """
    Blocked date - a single day on which an owner made a listing unavailable.
    """

    __tablename__ = "availability"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    motorcycle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("motorcycles.id", ondelete="CASCADE"),
        nullable=False,
    )
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    blocked_reason: Mapped[str | None] = mapped_column(String(300), nullable=True)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("motorcycle_id", "date", name="uq_availability_motorcycle_date"),
    )

    def __repr__(self) -> str:
        return f"<BlockedDate(motorcycle_id={self.motorcycle_id}, day={self.day})>"
