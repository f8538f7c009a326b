"""
Authentication dependencies for FastAPI.

Resolves the caller of a request from its bearer token. The caller is
passed explicitly into every domain operation.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.core.exceptions import TokenRevokedError
from tracker_backend.app.core.jwt import decode_access_token
from tracker_backend.app.core.token_revocation import is_token_revoked
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_current_token),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    FastAPI dependency for JWT authentication.

    1. Validates JWT token signature and expiry
    2. Checks if token has been revoked (logout)
    3. Loads the user so role flags reflect the current database state

    Returns:
        The calling User

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if await is_token_revoked(token):
        raise TokenRevokedError()

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user
