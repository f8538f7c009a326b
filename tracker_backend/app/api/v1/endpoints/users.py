"""
User administration API endpoints.
"""

from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.enums import Role
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.user import (
    RoleAssignment, UserCreate, UserProfileResponse, UserResponse, UserUpdate
)
from tracker_backend.app.core.guards import require_manager, require_user
from tracker_backend.app.domain.accounts.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

require_manager_write = require_user([Role.ADMIN, Role.MANAGER], write=True)


@router.get("", response_model=List[UserResponse])
async def get_users(
    caller: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db)
):
    """Users visible to the caller."""
    return await UserService.get_users(db, caller)


@router.post("", response_model=UserProfileResponse, status_code=status.HTTP_201_CREATED)
async def add_user(
    data: UserCreate,
    caller: User = Depends(require_manager_write),
    db: AsyncSession = Depends(get_db)
):
    """Create a user managed by the caller."""
    user = await UserService.add_user(db, caller, data)
    profile = await UserService.profile(db, user)
    await db.commit()
    return profile


@router.put("/roles", response_model=List[UserResponse])
async def save_roles(
    assignments: List[RoleAssignment],
    caller: User = Depends(require_manager_write),
    db: AsyncSession = Depends(get_db)
):
    """Set admin, manager and read-only flags of visible users."""
    users = await UserService.save_roles(db, caller, assignments)
    response = [UserResponse.model_validate(user) for user in users]
    await db.commit()
    return response


@router.put("/{user_id}", response_model=UserProfileResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    """Update the caller itself or a user it administers."""
    user = await UserService.update_user(db, caller, user_id, data)
    profile = await UserService.profile(db, user)
    await db.commit()
    return profile


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user(
    user_id: int,
    caller: User = Depends(require_manager_write),
    db: AsyncSession = Depends(get_db)
):
    """Remove a user; shared resources left without owners are deleted."""
    await UserService.remove_user(db, caller, user_id)
    await db.commit()
