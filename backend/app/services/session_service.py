"""
Session Service - signup, login and the refresh-token session lifecycle

A user has at most one refresh session: the bcrypt hash of its rti lives on
the users row. Logging in replaces it, logging out clears it, and refreshing
only mints a new access token.
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    InvalidCredentialsError,
    RefreshMissingError,
    RefreshInvalidError,
    UserExistsError,
    UserNotFoundError,
)
from app.core.logging_config import logger
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_dummy_password_hash,
    get_password_hash,
    hash_token_id,
    verify_password,
    verify_token_id,
)
from app.models.user import User
from app.schemas.auth import UserSignup


class SessionService:
    """Credential store and token issuance"""

    async def signup(self, db: AsyncSession, data: UserSignup) -> User:
        """
        Register a new user.

        Raises:
            UserExistsError: email (case-insensitive) or roll number taken
        """
        existing = await db.execute(
            select(User.id).where(
                or_(User.email == data.email, User.roll_number == data.roll_number)
            ).limit(1)
        )
        if existing.scalar_one_or_none():
            logger.log_auth_event("signup", success=False, reason="user_exists")
            raise UserExistsError()

        user = User(
            name=data.name,
            department=data.department,
            year=data.year,
            roll_number=data.roll_number,
            email=data.email,
            mobile_number=data.mobile_number,
            password_hash=get_password_hash(data.password),
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email/roll number
            await db.rollback()
            logger.log_auth_event("signup", success=False, reason="user_exists")
            raise UserExistsError()

        await db.refresh(user)
        logger.log_auth_event("signup", success=True, user_id=user.id)
        return user

    async def authenticate(self, db: AsyncSession, identifier: str, password: str) -> User:
        """
        Resolve an email or roll number and check the password.

        Unknown identifiers still pay for one bcrypt comparison so both failure
        paths take the same time and return the same error.
        """
        raw = identifier.strip()
        result = await db.execute(
            select(User)
            .where(or_(User.email == raw.lower(), User.roll_number == raw))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()

        if user is None:
            verify_password(password, get_dummy_password_hash())
            logger.log_auth_event("login", success=False, reason="invalid_credentials")
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.log_auth_event("login", success=False, user_id=user.id, reason="invalid_credentials")
            raise InvalidCredentialsError()

        return user

    async def start_session(self, db: AsyncSession, user: User) -> Tuple[str, str]:
        """
        Issue an access token and a fresh refresh token for a user.

        Replaces any previous refresh session. Returns (access_token, refresh_token).
        """
        access_token = create_access_token(user.id)
        refresh_token, token_id = create_refresh_token(user.id)

        now = datetime.utcnow()
        user.refresh_token_hash = hash_token_id(token_id)
        user.refresh_token_issued_at = now
        user.last_active_at = now
        await db.commit()

        logger.log_auth_event("login", success=True, user_id=user.id)
        return access_token, refresh_token

    async def login(self, db: AsyncSession, identifier: str, password: str) -> Tuple[User, str, str]:
        user = await self.authenticate(db, identifier, password)
        access_token, refresh_token = await self.start_session(db, user)
        return user, access_token, refresh_token

    async def refresh(self, db: AsyncSession, refresh_token: Optional[str]) -> str:
        """
        Exchange a refresh token for a new access token.

        The refresh token itself is not rotated.

        Raises:
            RefreshMissingError: no cookie presented
            RefreshInvalidError: bad signature, expired, logged out or replaced
        """
        if not refresh_token:
            raise RefreshMissingError()

        try:
            payload = decode_refresh_token(refresh_token)
        except RefreshInvalidError:
            logger.log_auth_event("refresh", success=False, reason="invalid_token")
            raise

        user_id = payload["sub"]
        user = await db.get(User, user_id, populate_existing=True)
        if user is None or not user.refresh_token_hash:
            logger.log_auth_event("refresh", success=False, user_id=user_id, reason="no_session")
            raise RefreshInvalidError()

        if not verify_token_id(payload["rti"], user.refresh_token_hash):
            logger.log_auth_event("refresh", success=False, user_id=user_id, reason="rti_mismatch")
            raise RefreshInvalidError()

        user.last_active_at = datetime.utcnow()
        await db.commit()

        logger.log_auth_event("refresh", success=True, user_id=user_id)
        return create_access_token(user_id)

    async def logout(self, db: AsyncSession, refresh_token: Optional[str]) -> None:
        """Revoke the refresh session named by the token, if it decodes"""
        if not refresh_token:
            return

        try:
            payload = decode_refresh_token(refresh_token)
        except RefreshInvalidError:
            # Best effort: an unreadable token has nothing to revoke
            logger.log_auth_event("logout", success=False, reason="invalid_token")
            return

        user_id = payload["sub"]
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(refresh_token_hash=None, refresh_token_issued_at=None, last_active_at=None)
            .execution_options(synchronize_session="fetch")
        )
        await db.commit()
        logger.log_auth_event("logout", success=True, user_id=user_id)

    async def get_profile(self, db: AsyncSession, user_id: str) -> User:
        """Load the caller and mark them active"""
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            raise UserNotFoundError(user_id)
        user.last_active_at = datetime.utcnow()
        await db.commit()
        return user

    async def join_community(self, db: AsyncSession, user_id: str) -> User:
        """Open the posting gate for a user; repeat calls are no-ops"""
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            raise UserNotFoundError(user_id)
        if not user.joined_community:
            user.joined_community = True
            await db.commit()
            logger.info(
                f"User {user_id} joined the community",
                extra={"event_type": "membership_join", "member_id": user_id}
            )
        return user


session_service = SessionService()
