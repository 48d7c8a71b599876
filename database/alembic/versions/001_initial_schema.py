"""Initial schema for MotoresRD

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Lowercased login email"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="Bcrypt password hash"),
        sa.Column("display_name", sa.String(150), nullable=True),
        sa.Column("photo_url", sa.String(500), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer", comment="Role: admin, dealer or customer"),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("business_name", sa.String(200), nullable=True),
        sa.Column("business_address", sa.String(300), nullable=True),
        sa.Column("business_phone", sa.String(30), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint("role IN ('admin', 'dealer', 'customer')", name="ck_users_role"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "access_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(20), nullable=False, comment="Action: login, logout, login_failed"),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_access_logs_user_id", "access_logs", ["user_id"])
    op.create_index("ix_access_logs_created_at", "access_logs", ["created_at"])

    # Catalog
    op.create_table(
        "brands",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("type", sa.String(20), nullable=False, server_default="motorcycle", comment="Vehicle type: motorcycle, car, truck or both"),
        sa.Column("legacy_id", sa.Integer(), nullable=True, comment="Numeric id of the brand in legacy SQL dumps"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("slug"),
        sa.UniqueConstraint("legacy_id"),
    )
    op.create_index("ix_brands_slug", "brands", ["slug"])

    op.create_table(
        "makes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("brand_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("slug", sa.String(180), nullable=False),
        sa.Column("type", sa.String(30), nullable=True),
        sa.Column("engine_size", sa.String(50), nullable=True),
        sa.Column("torque", sa.String(50), nullable=True),
        sa.Column("fuel_capacity", sa.String(50), nullable=True),
        sa.Column("cylinders", sa.Integer(), nullable=True),
        sa.Column("weight", sa.String(50), nullable=True),
        sa.Column("seat_height", sa.String(50), nullable=True),
        sa.Column("top_speed", sa.String(50), nullable=True),
        sa.Column("horsepower", sa.String(50), nullable=True),
        sa.Column("available_colors", sa.Text(), nullable=True, comment="Comma separated color names"),
        sa.Column("key_features", sa.Text(), nullable=True),
        sa.Column("market_presence", sa.String(10), nullable=True, comment="Alta, Media or Baja"),
        sa.Column("price_range_new", sa.String(100), nullable=True),
        sa.Column("price_range_used", sa.String(100), nullable=True),
        sa.Column("importer", sa.String(150), nullable=True),
        sa.Column("country_origin", sa.String(100), nullable=True),
        sa.Column("can_import", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("year_from", sa.Integer(), nullable=True),
        sa.Column("year_to", sa.Integer(), nullable=True),
        sa.Column("is_highlighted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("assigned_seller_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("price_new_min", sa.Float(), nullable=True),
        sa.Column("price_new_max", sa.Float(), nullable=True),
        sa.Column("price_used_min", sa.Float(), nullable=True),
        sa.Column("price_used_max", sa.Float(), nullable=True),
        sa.Column("torque_nm", sa.Float(), nullable=True),
        sa.Column("fuel_capacity_liters", sa.Float(), nullable=True),
        sa.Column("engine_cc", sa.Integer(), nullable=True),
        sa.Column("weight_kg", sa.Float(), nullable=True),
        sa.Column("horsepower_hp", sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["brand_id"], ["brands.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["assigned_seller_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("brand_id", "slug", name="uq_makes_brand_slug"),
    )
    op.create_index("ix_makes_brand_id", "makes", ["brand_id"])
    op.create_index("ix_makes_brand_name", "makes", ["brand_id", "name"])
    op.create_index("ix_makes_is_highlighted", "makes", ["is_highlighted"])
    op.create_index("ix_makes_assigned_seller_id", "makes", ["assigned_seller_id"])
    op.create_index("ix_makes_engine_cc", "makes", ["engine_cc"])

    # Rental listings
    op.create_table(
        "motorcycles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("make_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("make", sa.String(100), nullable=False, comment="Brand name"),
        sa.Column("model", sa.String(150), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("engine_cc", sa.Integer(), nullable=True),
        sa.Column("power_hp", sa.Float(), nullable=True),
        sa.Column("torque_nm", sa.Float(), nullable=True),
        sa.Column("category", sa.String(30), nullable=True),
        sa.Column("fuel_capacity_liters", sa.Float(), nullable=True),
        sa.Column("cylinders", sa.Integer(), nullable=True),
        sa.Column("weight", sa.String(50), nullable=True),
        sa.Column("seat_height", sa.String(50), nullable=True),
        sa.Column("top_speed", sa.String(50), nullable=True),
        sa.Column("year_from", sa.Integer(), nullable=True),
        sa.Column("year_to", sa.Integer(), nullable=True),
        sa.Column("market_presence", sa.String(10), nullable=True),
        sa.Column("importer", sa.String(150), nullable=True),
        sa.Column("country_origin", sa.String(100), nullable=True),
        sa.Column("can_import", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("key_features", sa.Text(), nullable=True),
        sa.Column("available_colors", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="[]"),
        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="[]", comment="List of {url, color, color_slug, is_primary}"),
        sa.Column("daily_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("weekly_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("monthly_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_highlighted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["make_id"], ["makes.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
        sa.CheckConstraint("daily_price > 0", name="ck_motorcycles_daily_price_positive"),
    )
    op.create_index("ix_motorcycles_make_id", "motorcycles", ["make_id"])
    op.create_index("ix_motorcycles_owner_id", "motorcycles", ["owner_id"])
    op.create_index("ix_motorcycles_slug", "motorcycles", ["slug"])
    op.create_index("ix_motorcycles_category", "motorcycles", ["category"])
    op.create_index("ix_motorcycles_available", "motorcycles", ["available"])
    op.create_index("ix_motorcycles_created_at", "motorcycles", ["created_at"])

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("motorcycle_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("daily_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("deposit", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("customer_name", sa.String(150), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(30), nullable=False),
        sa.Column("pickup_location", sa.String(300), nullable=True),
        sa.Column("dropoff_location", sa.String(300), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["motorcycle_id"], ["motorcycles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date >= start_date", name="ck_bookings_date_order"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled', 'rejected')",
            name="ck_bookings_status",
        ),
    )
    op.create_index("ix_bookings_motorcycle_id", "bookings", ["motorcycle_id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_owner_id", "bookings", ["owner_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])
    op.create_index("ix_bookings_motorcycle_dates", "bookings", ["motorcycle_id", "start_date", "end_date"])

    # Owner-blocked days
    op.create_table(
        "availability",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("motorcycle_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("blocked_reason", sa.String(300), nullable=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["motorcycle_id"], ["motorcycles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("motorcycle_id", "date", name="uq_availability_motorcycle_date"),
    )


def downgrade() -> None:
    op.drop_table("availability")
    op.drop_table("bookings")
    op.drop_table("motorcycles")
    op.drop_table("makes")
    op.drop_table("brands")
    op.drop_table("access_logs")
    op.drop_table("users")
