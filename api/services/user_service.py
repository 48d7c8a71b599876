"""
MotoresRD - User Service.

Registration, credential checks, profiles and admin user management.
Also holds the role predicates used by every other service for
permission checks.
"""

import logging
import uuid
from datetime import datetime, UTC
from typing import Any

from fastapi import HTTPException
from passlib.hash import bcrypt
from sqlalchemy import func, select

from api.models.user import AdminUserUpdate, ProfileUpdate, RegisterRequest
from database.connection import get_async_session
from database.models import AccessLog, User
from shared.logging_config import mask_email

logger = logging.getLogger(__name__)


# =============================================================================
# Role predicates
# =============================================================================


def has_role(user: User | None, *roles: str) -> bool:
    return user is not None and user.is_active and user.role in roles


def is_admin(user: User | None) -> bool:
    return has_role(user, "admin")


def is_dealer(user: User | None) -> bool:
    return has_role(user, "dealer")


def is_dealer_or_admin(user: User | None) -> bool:
    return has_role(user, "dealer", "admin")


def ensure_owner_or_admin(user: User, owner_id: uuid.UUID, detail: str) -> None:
    """Raise 403 unless user is an admin or owns the resource."""
    if not (is_admin(user) or user.id == owner_id):
        raise HTTPException(status_code=403, detail=detail)


class UserService:
    """Service for user accounts."""

    async def register(self, data: RegisterRequest) -> User:
        """
        Create a customer or dealer account.

        New accounts are active and unverified. Admin accounts are only
        created by the startup seed or promoted by another admin.

        Raises:
            HTTPException 409: Email already registered
        """
        async with get_async_session() as session:
            existing = await session.scalar(select(User.id).where(User.email == data.email))
            if existing:
                raise HTTPException(
                    status_code=409,
                    detail="Ya existe una cuenta con este correo electrónico",
                )

            user = User(
                email=data.email,
                password_hash=bcrypt.hash(data.password),
                display_name=data.display_name.strip(),
                role=data.role,
                phone=data.phone,
                business_name=data.business_name,
                business_address=data.business_address,
                business_phone=data.business_phone,
                is_verified=False,
                is_active=True,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)

        logger.info(
            f"Registered {user.role} account {mask_email(user.email)}",
            extra={"user_id": user.id},
        )
        return user

    async def authenticate(self, email: str, password: str) -> tuple[User | None, str | None]:
        """
        Check credentials.

        Returns:
            (user, None) on success, otherwise (user_or_None, failure_reason)
            where reason is "unknown_email", "account_disabled" or "invalid_password"
        """
        async with get_async_session() as session:
            user = await session.scalar(select(User).where(User.email == email.lower()))

            if user is None:
                return None, "unknown_email"
            if not bcrypt.verify(password, user.password_hash):
                return user, "invalid_password"
            if not user.is_active:
                return user, "account_disabled"

            user.last_login_at = datetime.now(UTC)
            await session.commit()
            await session.refresh(user)
            return user, None

    async def record_access(
        self,
        user_id: uuid.UUID,
        action: str,
        ip_address: str | None,
        user_agent: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Write an access log entry (login, logout, login_failed)."""
        async with get_async_session() as session:
            session.add(
                AccessLog(
                    user_id=user_id,
                    action=action,
                    ip_address=ip_address,
                    user_agent=(user_agent or "")[:500],
                    details=details,
                )
            )
            await session.commit()

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        async with get_async_session() as session:
            return await session.get(User, user_id)

    async def update_profile(self, user_id: uuid.UUID, data: ProfileUpdate) -> User:
        async with get_async_session() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise HTTPException(status_code=404, detail="Usuario no encontrado")

            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(user, field, value)

            await session.commit()
            await session.refresh(user)
            return user

    async def list_users(
        self,
        role: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[User], int]:
        async with get_async_session() as session:
            count_query = select(func.count(User.id))
            query = select(User).order_by(User.created_at.desc())
            if role:
                count_query = count_query.where(User.role == role)
                query = query.where(User.role == role)

            total = await session.scalar(count_query) or 0
            result = await session.execute(query.offset(offset).limit(limit))
            return list(result.scalars().all()), total

    async def admin_update_user(
        self,
        actor: User,
        user_id: uuid.UUID,
        data: AdminUserUpdate,
    ) -> User:
        """
        Change role, active or verified flags.

        Raises:
            HTTPException 400: An admin tried to demote or disable themselves
        """
        if user_id == actor.id and (
            (data.role is not None and data.role != "admin") or data.is_active is False
        ):
            raise HTTPException(
                status_code=400,
                detail="No puede quitarse el rol de administrador ni desactivar su propia cuenta",
            )

        async with get_async_session() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise HTTPException(status_code=404, detail="Usuario no encontrado")

            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            for field, value in changes.items():
                setattr(user, field, value)

            await session.commit()
            await session.refresh(user)

        logger.info(
            f"User {user_id} updated by {actor.id}: {sorted(changes)}",
            extra={"user_id": actor.id},
        )
        return user

    async def list_access_logs(
        self,
        user_id: uuid.UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AccessLog]:
        async with get_async_session() as session:
            result = await session.execute(
                select(AccessLog)
                .where(AccessLog.user_id == user_id)
                .order_by(AccessLog.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def seed_admin(self, email: str, password: str) -> bool:
        """Create the first admin when no admin exists. Returns True if created."""
        if not email or not password:
            logger.warning("No ADMIN_EMAIL/ADMIN_PASSWORD set, skipping admin seed")
            return False

        async with get_async_session() as session:
            count = await session.scalar(
                select(func.count(User.id)).where(User.role == "admin")
            )
            if count:
                return False

            session.add(
                User(
                    email=email.strip().lower(),
                    password_hash=bcrypt.hash(password),
                    display_name="Administrador",
                    role="admin",
                    is_verified=True,
                    is_active=True,
                )
            )
            await session.commit()

        logger.info(f"Seeded initial admin user: {mask_email(email)}")
        return True


# Singleton
_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
