"""
Application Settings database model.

Singleton row holding the admin-editable runtime settings.
"""

from sqlalchemy import Column, Integer, String, Boolean, Enum
from tracker_backend.app.db.session import Base
from tracker_backend.app.core.config import settings
from tracker_backend.app.models.enums import PasswordHashMethod


class ApplicationSettings(Base):
    __tablename__ = "application_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_enabled = Column(Boolean, default=True, nullable=False)
    update_interval = Column(Integer, default=15000, nullable=False)  # ms
    default_hash_implementation = Column(Enum(PasswordHashMethod), default=PasswordHashMethod.MD5, nullable=False)
    disallow_device_management_by_users = Column(Boolean, default=False, nullable=False)
    event_recording_enabled = Column(Boolean, default=True, nullable=False)
    language = Column(String(16), default="default", nullable=False)

    @classmethod
    def defaults(cls) -> "ApplicationSettings":
        return cls(
            registration_enabled=settings.default_registration_enabled,
            update_interval=15000,
            default_hash_implementation=PasswordHashMethod(settings.default_hash_method),
            disallow_device_management_by_users=False,
            event_recording_enabled=True,
            language="default",
        )

    def __repr__(self):
        return f"<ApplicationSettings(registration_enabled={self.registration_enabled}, hash='{self.default_hash_implementation}')>"
