"""
MotoresRD - User and authentication Pydantic schemas.

Schemas for registration, login and user management with role-based access.
"""

import re
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

import phonenumbers
from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Type Definitions
# =============================================================================

UserRole = Literal["admin", "dealer", "customer"]
SelfServiceRole = Literal["customer", "dealer"]
AccessAction = Literal["login", "logout", "login_failed"]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Correo electrónico inválido")
    return value


def normalize_phone(value: str | None) -> str | None:
    """Validate a phone number and normalize it to E.164 (default region DO)."""
    if value is None or not value.strip():
        return None
    try:
        parsed = phonenumbers.parse(value, "DO")
    except phonenumbers.NumberParseException as e:
        raise ValueError(f"Número de teléfono inválido: {value}") from e
    if not phonenumbers.is_valid_number(parsed):
        raise ValueError(f"Número de teléfono inválido: {value}")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


# =============================================================================
# Registration & Profile
# =============================================================================


class RegisterRequest(BaseModel):
    """Schema for self-service registration (customers and dealers)."""

    email: str = Field(..., max_length=255)
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (minimum 8 characters)",
    )
    display_name: str = Field(..., min_length=1, max_length=150)
    role: SelfServiceRole = Field(
        default="customer",
        description="Admins cannot self-register",
    )
    phone: str | None = Field(None, max_length=30)
    business_name: str | None = Field(None, max_length=200)
    business_address: str | None = Field(None, max_length=300)
    business_phone: str | None = Field(None, max_length=30)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("phone", "business_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)

    @model_validator(mode="after")
    def dealer_requires_business(self) -> "RegisterRequest":
        if self.role == "dealer" and not (self.business_name or "").strip():
            raise ValueError("Los concesionarios deben indicar el nombre del negocio")
        return self


class ProfileUpdate(BaseModel):
    """Fields a user may edit on their own profile."""

    display_name: str | None = Field(None, min_length=1, max_length=150)
    photo_url: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, max_length=30)
    business_name: str | None = Field(None, max_length=200)
    business_address: str | None = Field(None, max_length=300)
    business_phone: str | None = Field(None, max_length=30)

    @field_validator("phone", "business_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class AdminUserUpdate(BaseModel):
    """Fields only an admin may change."""

    role: UserRole | None = None
    is_active: bool | None = Field(None, description="Active status (soft delete)")
    is_verified: bool | None = None


class UserResponse(BaseModel):
    """Schema for user response."""

    id: UUID
    email: str
    display_name: str | None
    photo_url: str | None = None
    role: UserRole
    phone: str | None = None
    business_name: str | None = None
    business_address: str | None = None
    business_phone: str | None = None
    is_verified: bool
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """Schema for paginated user list."""

    items: list[UserResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class AccessLogResponse(BaseModel):
    """Schema for access log entry response."""

    id: UUID
    user_id: UUID
    action: AccessAction
    ip_address: str | None
    user_agent: str | None
    details: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Auth Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Account password")

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginResponse(BaseModel):
    """Schema for login response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
