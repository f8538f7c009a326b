"""
User Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from tracker_backend.app.models.enums import DeviceEventType, PasswordHashMethod
from tracker_backend.app.schemas.settings import UserSettingsSchema


class UserCreate(BaseModel):
    """Schema for POST /users."""
    login: str = Field(..., max_length=128)
    password: str = Field(...)
    email: Optional[str] = Field(None, max_length=255)
    admin: bool = False
    manager: bool = False
    read_only: bool = False
    notification_events: Optional[List[DeviceEventType]] = None
    settings: Optional[UserSettingsSchema] = None


class UserUpdate(BaseModel):
    """
    Schema for PUT /users/{id}.

    `password` may carry the stored hash unchanged, meaning "keep the
    current credential".
    """
    login: str = Field(..., max_length=128)
    password: str = Field(...)
    email: Optional[str] = Field(None, max_length=255)
    admin: bool = False
    manager: bool = False
    notification_events: Optional[List[DeviceEventType]] = None
    settings: Optional[UserSettingsSchema] = None


class RoleAssignment(BaseModel):
    """One entry of PUT /users/roles."""
    id: int
    admin: bool = False
    manager: bool = False
    read_only: bool = False


class UserResponse(BaseModel):
    """Schema for user information response."""
    id: int
    login: str
    email: Optional[str] = None
    admin: bool
    manager: bool
    read_only: bool
    managed_by_id: Optional[int] = None
    password_hash_method: PasswordHashMethod
    notification_events: Optional[List[DeviceEventType]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProfileResponse(BaseModel):
    """User with its settings, returned by /auth endpoints and user mutations."""
    user: UserResponse
    settings: Optional[UserSettingsSchema] = None
