"""
Database seeding script for the initial admin.

Creates the application settings row and an `admin` user when the
database is empty. Run this script after the database is set up but
before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker_backend.app.db.session import AsyncSessionLocal, Base, engine
from tracker_backend.app.core.security import set_password
from tracker_backend.app.domain.settings.settings_service import SettingsService
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UIStateEntry, UserSettings

ADMIN_LOGIN = "admin"
ADMIN_PASSWORD = "admin"


async def seed_defaults(db: AsyncSession) -> bool:
    """
    Create default application settings and the admin user.

    Returns:
        True if the admin was created, False if it already existed
    """
    app_settings = await SettingsService.get_application_settings(db)

    result = await db.execute(select(User).where(User.login == ADMIN_LOGIN))
    if result.scalar_one_or_none() is not None:
        await db.commit()
        return False

    admin_user = User(login=ADMIN_LOGIN, admin=True, manager=False, read_only=False)
    set_password(admin_user, app_settings.default_hash_implementation, ADMIN_PASSWORD)
    db.add(admin_user)
    await db.flush()

    db.add(UserSettings.defaults(admin_user.id))
    db.add(UIStateEntry.default_archive_grid(admin_user.id))
    await db.commit()
    return True


async def seed_users():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")
        if await seed_defaults(db):
            print(f"✅ Created ADMIN user (login: {ADMIN_LOGIN}, password: {ADMIN_PASSWORD})")
        else:
            print("ℹ️  ADMIN user already exists, skipping seeding")


if __name__ == "__main__":
    asyncio.run(seed_users())
