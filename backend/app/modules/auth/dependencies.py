from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import AuthRequiredError, UserNotFoundError
from app.core.logging_config import set_user_id
from app.core.security import decode_access_token
from app.models.user import User

# auto_error=False so a missing header becomes AUTH_REQUIRED rather than a bare 403
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Resolve the caller from the bearer access token.

    No database lookup happens here; the subject is trusted for the
    token's lifetime.
    """
    if credentials is None or not credentials.credentials:
        raise AuthRequiredError()

    payload = decode_access_token(credentials.credentials)
    user_id = payload["sub"]

    request.state.user_id = user_id
    set_user_id(user_id)
    return user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFoundError(user_id)
    return user
