"""
MotoresRD - Authentication routes and helpers.

JWT bearer tokens (also set as an HttpOnly cookie), Redis token revocation,
role-based dependencies and access logging.
"""

import logging
import uuid
from datetime import datetime, timedelta, UTC
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from api.middleware.rate_limit import get_rate_limiter
from api.models.user import (
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    UserResponse,
)
from api.services.user_service import get_user_service
from database.models import User
from shared.config import get_settings
from shared.logging_config import mask_email
from shared.redis_client import get_redis_client
from shared.redis_keys import RedisKeys

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
AUTH_COOKIE = "motoresrd_token"

security = HTTPBearer(auto_error=False)


# =============================================================================
# Token Helpers
# =============================================================================


def create_access_token(user_id: uuid.UUID, email: str, role: str) -> tuple[str, datetime]:
    """
    Create JWT access token.

    Returns:
        Tuple of (token, expiration_datetime)
    """
    settings = get_settings()
    now = datetime.now(UTC)
    expire = now + timedelta(hours=settings.TOKEN_EXPIRE_HOURS)

    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": TOKEN_TYPE,
        "jti": str(uuid.uuid4()),
        "exp": expire,
        "iat": now,
    }

    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)
    return token, expire


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify JWT signature, expiry and type.

    Raises:
        HTTPException 401: Invalid or expired token
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    if credentials:
        return credentials.credentials
    return request.cookies.get(AUTH_COOKIE)


async def _is_revoked(jti: str | None) -> bool:
    if not jti:
        return False
    redis_client = get_redis_client()
    return bool(await redis_client.get(RedisKeys.jwt_blacklist(jti)))


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """
    Validate the bearer token (or auth cookie) and return the user.

    Raises:
        HTTPException 401: Missing, invalid or revoked token, or user not found/inactive
    """
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(token)

    if await _is_revoked(payload.get("jti")):
        raise HTTPException(status_code=401, detail="Token has been revoked")

    try:
        user_id = uuid.UUID(payload.get("sub", ""))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await get_user_service().get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is disabled")

    request.state.user_id = str(user.id)
    return user


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User | None:
    """Like get_current_user, but anonymous requests yield None."""
    if not _extract_token(request, credentials):
        return None
    return await get_current_user(request, credentials)


def require_role(*roles: str) -> Callable:
    """
    Create a dependency that requires specific role(s).

    Example:
        @router.post("/brands")
        async def create_brand(user: User = Depends(require_role("admin"))):
            ...
    """
    async def check_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions. Required role: {', '.join(roles)}",
            )
        return current_user

    return check_role


async def log_access(
    user_id: uuid.UUID,
    action: str,
    request: Request,
    details: dict[str, Any] | None = None,
) -> None:
    """Log an access event (login, logout, login_failed)."""
    await get_user_service().record_access(
        user_id=user_id,
        action=action,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent", ""),
        details=details,
    )


# =============================================================================
# Auth Routes
# =============================================================================


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(data: RegisterRequest) -> UserResponse:
    """Create a customer or dealer account."""
    user = await get_user_service().register(data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    login_data: LoginRequest,
    response: Response,
) -> LoginResponse:
    """
    Authenticate and return a JWT token; the token is also set as an HttpOnly cookie.

    Raises:
        HTTPException 401: Unknown email, wrong password or disabled account
        HTTPException 429: Too many attempts from this address
    """
    settings = get_settings()
    client_ip = request.client.host if request.client else "unknown"

    limiter = get_rate_limiter()
    if not limiter.check_rate_limit(
        f"login:{client_ip}", max_requests=settings.LOGIN_RATE_LIMIT, window_seconds=60
    ):
        raise HTTPException(
            status_code=429,
            detail="Demasiados intentos de inicio de sesión. Espera 1 minuto e intenta de nuevo.",
        )

    user, failure = await get_user_service().authenticate(login_data.email, login_data.password)

    if failure:
        logger.warning(f"Login failed for {mask_email(login_data.email)}: {failure}")
        if user is not None:
            await log_access(user.id, "login_failed", request, {"reason": failure})
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token, expire = create_access_token(user.id, user.email, user.role)

    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        expires=expire,
    )

    await log_access(user.id, "login", request)
    logger.info(f"Login successful: {mask_email(user.email)}", extra={"user_id": user.id})

    return LoginResponse(
        access_token=token,
        expires_in=settings.TOKEN_EXPIRE_HOURS * 3600,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    """Revoke the current token until it would have expired."""
    token = _extract_token(request, credentials)
    payload = decode_token(token)

    jti = payload.get("jti")
    if jti:
        ttl = max(1, int(payload.get("exp", 0)) - int(datetime.now(UTC).timestamp()))
        await get_redis_client().setex(RedisKeys.jwt_blacklist(jti), ttl, "1")

    await log_access(current_user.id, "logout", request)
    response.delete_cookie(AUTH_COOKIE)

    logger.info(f"Logout: {mask_email(current_user.email)}", extra={"user_id": current_user.id})
    return {"message": "Sesión cerrada correctamente"}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Get current authenticated user info."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Update the current user's profile."""
    user = await get_user_service().update_profile(current_user.id, data)
    return UserResponse.model_validate(user)
