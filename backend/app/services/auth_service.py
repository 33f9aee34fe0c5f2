"""
X Tracking API — Auth Service
===============================

What:  Business logic behind /api/auth: registration, login, profile and
       password changes, and report preferences.
Who:   Called by the auth route handlers once the route's gate and field
       rules have passed. Field presence/format is therefore already
       guaranteed here; this layer owns uniqueness, credential checks and
       persistence.

Error Handling Strategy:
    Domain failures raise application exceptions (ConflictError,
    InvalidCredentialsError, ValidationError). SQLAlchemy failures are
    logged and wrapped in DatabaseError so no SQL detail reaches the client.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.database import utc_now
from app.exceptions import ConflictError, DatabaseError, InvalidCredentialsError
from app.models.user import DEFAULT_ROLE, User
from app.schemas.auth import UserPreferences
from app.security import create_access_token, hash_password, verify_password
from app.validation import parse_payload

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Stateless: every method receives the request's AsyncSession."""

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    def issue_token(self, user: User) -> str:
        return create_access_token(user.id)

    async def register(self, db: AsyncSession, name: str, email: str, password: str) -> User:
        """
        Create a user with the default role and default preferences.

        Raises:
            ConflictError: a user with this email already exists
            DatabaseError: the insert failed for any other reason
        """
        email = normalize_email(email)
        try:
            if await self.find_by_email(db, email) is not None:
                raise ConflictError(
                    message="User with this email already exists",
                    context={"field": "email"},
                )

            password_hash = await run_in_threadpool(hash_password, password)
            user = User(
                name=name,
                email=email,
                role=DEFAULT_ROLE,
                password_hash=password_hash,
                preferences=UserPreferences().to_json(),
            )
            db.add(user)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise ConflictError(
                message="User with this email already exists",
                context={"field": "email"},
            )
        except SQLAlchemyError as e:
            logger.error("Error registering user: %s", e)
            raise DatabaseError(context={"operation": "register"})

        logger.info("User registered: %s", user.id)
        return user

    async def login(self, db: AsyncSession, email: str, password: Any) -> User:
        """
        Check an email/password pair.

        Unknown email and wrong password produce the same error so the
        response does not reveal which accounts exist.
        """
        try:
            user = await self.find_by_email(db, email)
        except SQLAlchemyError as e:
            logger.error("Error logging in user: %s", e)
            raise DatabaseError(context={"operation": "login"})

        if user is None:
            raise InvalidCredentialsError()

        if not isinstance(password, str):
            password = "" if password is None else str(password)
        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise InvalidCredentialsError()

        logger.info("User logged in: %s", user.id)
        return user

    async def update_details(
        self,
        db: AsyncSession,
        user: User,
        name: str,
        email: Optional[str] = None,
    ) -> User:
        """Rename the user and, when `email` is given, move them to a new unused email."""
        try:
            if email:
                email = normalize_email(email)
                result = await db.execute(
                    select(User).where(User.email == email, User.id != user.id)
                )
                if result.scalar_one_or_none() is not None:
                    raise ConflictError(
                        message="Email already in use",
                        context={"field": "email"},
                    )
                user.email = email

            user.name = name
            user.updated_at = utc_now()
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="Email already in use", context={"field": "email"})
        except SQLAlchemyError as e:
            logger.error("Error updating user details: %s", e)
            raise DatabaseError(context={"operation": "update_details"})

        logger.info("User %s updated details", user.id)
        return user

    async def update_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: Any,
        new_password: str,
    ) -> User:
        """
        Replace the password after re-checking the current one.

        Raises:
            InvalidCredentialsError: current password does not match
        """
        if not isinstance(current_password, str):
            current_password = "" if current_password is None else str(current_password)
        if not await run_in_threadpool(verify_password, current_password, user.password_hash):
            raise InvalidCredentialsError(message="Current password is incorrect")

        try:
            user.password_hash = await run_in_threadpool(hash_password, new_password)
            user.updated_at = utc_now()
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Error updating password: %s", e)
            raise DatabaseError(context={"operation": "update_password"})

        logger.info("User %s changed password", user.id)
        return user

    async def update_preferences(
        self,
        db: AsyncSession,
        user: User,
        payload: Dict[str, Any],
    ) -> UserPreferences:
        """
        Replace the preferences document. Keys absent from `payload` fall
        back to their defaults; invalid values raise ValidationError.
        """
        preferences = parse_payload(UserPreferences, payload)
        try:
            user.preferences = preferences.to_json()
            user.updated_at = utc_now()
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Error updating preferences: %s", e)
            raise DatabaseError(context={"operation": "update_preferences"})

        logger.info("User %s updated preferences", user.id)
        return preferences


auth_service = AuthService()
