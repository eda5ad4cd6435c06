"""
RecipeShare Backend — Password Hashing and Access Tokens
==========================================================

What:  bcrypt password hashing (passlib) and HS256 JWT issue/verify (python-jose),
       plus the FastAPI dependency that turns a bearer token into a user ID.
Who:   AuthService (signup/login) and every route that requires a signed-in user.

Token claims:
    sub: user ID (UUID string)
    iat: issue time
    exp: iat + JWT_EXPIRE_HOURS (default 24h)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt
from passlib.context import CryptContext

from recipeshare.config import settings
from recipeshare.exceptions import AccessDeniedError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """Hash a plain text password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain text password against a stored bcrypt hash."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Stored value is not a recognizable hash
        logger.warning("Password verification against malformed hash")
        return False


def create_access_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed JWT whose subject is the user's ID."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expire_hours))
    claims = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a JWT and return the user ID it was issued for.

    Raises:
        AccessDeniedError("Invalid token"): bad signature, expired, malformed,
        or a subject that is not a UUID.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return uuid.UUID(str(payload["sub"]))
    except (JWTError, KeyError, ValueError) as e:
        logger.debug("JWT verification failed: %r", e)
        raise AccessDeniedError(message="Invalid token")


async def get_current_user_id(
    authorization: Optional[str] = Header(default=None, description="Bearer <token>"),
) -> uuid.UUID:
    """
    FastAPI dependency for protected routes.

    Accepts "Bearer <token>" or the bare token, as the dashboard has sent both.

    Raises:
        AccessDeniedError("Access denied"): header missing or empty (→ 403)
        AccessDeniedError("Invalid token"): token fails verification (→ 403)
    """
    if not authorization or not authorization.strip():
        raise AccessDeniedError(message="Access denied")

    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token[len("bearer "):].strip()

    return decode_access_token(token)
