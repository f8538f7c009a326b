"""
User hierarchy service.

Models the manager -> managed-user relation. Only the direct `managed_by`
link is followed; sub-managers' users are not included.
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tracker_backend.app.models.user import User


async def managed_users_of(db: AsyncSession, user: User) -> List[User]:
    """
    Users whose `managed_by` points at `user`.

    Args:
        db: Database session
        user: Manager

    Returns:
        Directly managed users, ordered by id
    """
    result = await db.execute(
        select(User).where(User.managed_by_id == user.id).order_by(User.id)
    )
    return list(result.scalars().all())


async def visible_users(db: AsyncSession, caller: User) -> List[User]:
    """
    Users the caller can see and administer.

    Admins see every user, managers see their managed users,
    everybody else sees nobody.
    """
    if caller.admin:
        result = await db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())
    if caller.manager:
        return await managed_users_of(db, caller)
    return []


async def is_visible_to(db: AsyncSession, caller: User, user: User) -> bool:
    if caller.admin:
        return True
    return caller.manager and user.managed_by_id == caller.id
