from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import set_user_id
from app.core.rate_limiter import auth_rate_limit
from app.modules.auth.dependencies import get_current_user_id
from app.schemas.auth import (
    AccessTokenResponse,
    LoginResponse,
    MeResponse,
    MessageResponse,
    SignupResponse,
    UserLogin,
    UserResponse,
    UserSignup,
    UserSummary,
)
from app.services.session_service import session_service

router = APIRouter()


def _refresh_cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": settings.REFRESH_COOKIE_PATH,
    }


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=token,
        max_age=settings.REFRESH_TOKEN_TTL_SECONDS,
        **_refresh_cookie_options(),
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.REFRESH_COOKIE_NAME, **_refresh_cookie_options())


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
@auth_rate_limit()
async def signup(
    request: Request,
    user_data: UserSignup,
    db: AsyncSession = Depends(get_db)
):
    """Register new user"""
    user = await session_service.signup(db, user_data)
    return SignupResponse(user=UserSummary.model_validate(user))


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    response: Response,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Log in with email or roll number; sets the refresh cookie"""
    user, access_token, refresh_token = await session_service.login(
        db, credentials.identifier, credentials.password
    )
    set_user_id(user.id)
    set_refresh_cookie(response, refresh_token)
    return LoginResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(request: Request, db: AsyncSession = Depends(get_db)):
    """Mint a new access token from the refresh cookie"""
    token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    access_token = await session_service.refresh(db, token)
    return AccessTokenResponse(access_token=access_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response, db: AsyncSession = Depends(get_db)):
    """Revoke the refresh session and clear the cookie"""
    token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    await session_service.logout(db, token)
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
async def get_me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Get current user information"""
    user = await session_service.get_profile(db, user_id)
    return MeResponse(user=UserResponse.model_validate(user))
