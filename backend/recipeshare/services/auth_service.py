"""
RecipeShare Backend — Auth Service
====================================

What:  Account creation and login.
How:   Looks users up by username, hashes/verifies passwords with bcrypt and
       issues a JWT on successful login.
Who:   Called by routes/auth.py.

bcrypt is deliberately slow (cost 10 ≈ tens of milliseconds), so hashing and
verification run in Starlette's threadpool instead of on the event loop.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from recipeshare.exceptions import AuthenticationError, DatabaseError, ValidationError
from recipeshare.models.user import User
from recipeshare.schemas.auth import LoginResponse
from recipeshare.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50


def _require_credentials(username: Optional[str], password: Optional[str]) -> Tuple[str, str]:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError(message="Username and password are required")
    return username, password


class AuthService:
    """
    Signup and login against the `users` table.

    Error Handling Strategy:
        Client mistakes surface as ValidationError (400) or
        AuthenticationError (401). Unexpected SQLAlchemy failures are wrapped
        in DatabaseError so no SQL reaches the response.
    """

    async def signup(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Create an account.

        Raises:
            ValidationError: missing fields, bad username length, or a taken username
            DatabaseError: the insert failed for another reason
        """
        username, password = _require_credentials(username, password)
        if not MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH:
            raise ValidationError(
                message=(
                    f"Username must be between {MIN_USERNAME_LENGTH} "
                    f"and {MAX_USERNAME_LENGTH} characters"
                ),
                field="username",
            )

        try:
            if await self._find_by_username(db, username) is not None:
                raise ValidationError(message="Username already exists", field="username")

            password_hash = await run_in_threadpool(hash_password, password)
            user = User(username=username, password_hash=password_hash)
            db.add(user)
            await db.flush()

        except ValidationError:
            raise
        except IntegrityError:
            # Lost a race with a concurrent signup for the same name
            await db.rollback()
            raise ValidationError(message="Username already exists", field="username")
        except SQLAlchemyError as e:
            logger.error("Database error during signup: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("User created: %s (%s)", user.username, user.id)
        return user

    async def login(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
    ) -> LoginResponse:
        """
        Verify credentials and issue an access token.

        Unknown usernames and wrong passwords give the same error, so the
        response does not reveal which usernames exist.

        Raises:
            ValidationError: missing fields
            AuthenticationError: unknown user or wrong password
        """
        username, password = _require_credentials(username, password)

        try:
            user = await self._find_by_username(db, username)
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not sign in. Please try again.",
                context={"error_type": type(e).__name__},
            )

        if user is None:
            logger.info("Login failed: unknown user %s", username)
            raise AuthenticationError()

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.info("Login failed: wrong password for %s", username)
            raise AuthenticationError()

        logger.info("User logged in: %s", user.id)
        return LoginResponse(token=create_access_token(user.id), user_id=user.id)

    async def _find_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
