from datetime import datetime, timedelta, timezone
from typing import List, Optional, Callable

from beanie import PydanticObjectId as OID
from bson.errors import InvalidId
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from app.config import get_settings
from app.constants import Role
from app.exceptions import Forbidden, Unauthorized
from app.models.user import User
from app.utils.logger import get_logger

settings = get_settings()
logger = get_logger("security")

# tokenUrl is only used by the Swagger "Authorize" dialog
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

# ------------------------ Password hashing helpers ------------------------

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password; False when no hash is stored."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


# ------------------------ JWT helpers ------------------------


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token (short-lived - 1 hour by default)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT refresh token (long-lived - 30 days by default)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def issue_tokens(user: User) -> dict:
    claims = {"sub": str(user.id), "role": user.role.value}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def decode_token(token: str, token_type: str = "access") -> dict:
    """Decode JWT token and verify its type."""
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise Unauthorized("Invalid or expired token")
    if payload.get("type") != token_type:
        raise Unauthorized(f"Invalid token type. Expected {token_type}")
    return payload


async def user_from_token(token: str, token_type: str = "access") -> User:
    """Resolve a token to an active user or raise 401."""
    payload = decode_token(token, token_type=token_type)
    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise Unauthorized()
    try:
        user = await User.get(OID(user_id))
    except (InvalidId, TypeError):
        user = None
    if not user:
        raise Unauthorized()
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
) -> User:
    """Decode JWT access token and fetch current user from MongoDB.
    Raises 401 if token invalid, expired, user not found or deactivated.
    Only accepts access tokens, not refresh tokens.
    """
    return await user_from_token(token, token_type="access")


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
) -> Optional[User]:
    """Like get_current_user, but anonymous visitors (or stale tokens) get None."""
    if not token:
        return None
    try:
        return await user_from_token(token, token_type="access")
    except HTTPException as exc:
        logger.debug(f"Ignoring unusable token on public endpoint: {exc.detail}")
        return None


# ------------------------ RBAC helpers ------------------------


def require_roles(allowed: List[Role]) -> Callable:
    """FastAPI dependency factory to enforce role-based access.
    Usage: Depends(require_roles([Role.ADMIN, Role.DOCTOR]))
    """

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise Forbidden("Insufficient permissions")
        return current_user

    return checker


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == Role.ADMIN


def ensure_owner_or_admin(user: User, owner_id: OID, action: str = "modify this content") -> None:
    if user.id != owner_id and user.role != Role.ADMIN:
        raise Forbidden(f"You are not allowed to {action}")
