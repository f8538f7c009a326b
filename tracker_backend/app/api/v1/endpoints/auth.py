"""
Authentication API endpoints.

Login, logout, self-registration and the caller's own profile.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from tracker_backend.app.schemas.user import UserProfileResponse
from tracker_backend.app.core.exceptions import AuthenticationError
from tracker_backend.app.core.jwt import create_access_token
from tracker_backend.app.core.dependencies import get_current_token, get_current_user
from tracker_backend.app.domain.accounts.auth_service import AuthService
from tracker_backend.app.domain.accounts.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _token_response(db: AsyncSession, user: User) -> TokenResponse:
    access_token = create_access_token(data={"sub": user.login, "user_id": user.id})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        profile=await UserService.profile(db, user)
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Failed attempts are recorded in the audit log before the error is returned.
    """
    ip_address = request.client.host if request.client else None
    try:
        user = await AuthService.login(
            db, credentials.login, credentials.password,
            hashed=credentials.hashed, ip_address=ip_address
        )
    except AuthenticationError:
        await db.commit()
        raise

    response = await _token_response(db, user)
    await db.commit()
    return response


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    Registered users are managers with default settings.
    """
    user = await AuthService.register(db, data.login, data.password)
    response = await _token_response(db, user)
    await db.commit()
    return response


@router.post("/logout")
async def logout(
    token: str = Depends(get_current_token),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    revoked = await AuthService.logout(db, current_user, token)
    await db.commit()
    return {"logged_out": True, "token_revoked": revoked}


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current authenticated user with its settings."""
    return await UserService.profile(db, current_user)
