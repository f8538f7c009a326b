"""
User database model.

Users carry their credential, role flags and a weak reference to the
manager that created them.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.sql import func
from tracker_backend.app.db.session import Base
from tracker_backend.app.models.enums import PasswordHashMethod, Role


class User(Base):
    """
    User model for authentication and ownership of devices and geo-fences.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    login = Column(String(128), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    password_hash_method = Column(Enum(PasswordHashMethod), default=PasswordHashMethod.PLAIN, nullable=False)
    email = Column(String(255), nullable=True)

    # Role flags
    admin = Column(Boolean, default=False, nullable=False)
    manager = Column(Boolean, default=False, nullable=False)
    read_only = Column(Boolean, default=False, nullable=False)

    # Hierarchy - user created by a manager (nulled when the manager is removed)
    managed_by_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=True)

    # DeviceEventType values the user subscribed to
    notification_events = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def roles(self) -> set:
        roles = set()
        if self.admin:
            roles.add(Role.ADMIN)
        if self.manager:
            roles.add(Role.MANAGER)
        return roles

    def __repr__(self):
        return f"<User(id={self.id}, login='{self.login}', admin={self.admin}, manager={self.manager})>"
