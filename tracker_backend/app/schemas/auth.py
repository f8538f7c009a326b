"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, Field
from tracker_backend.app.schemas.user import UserProfileResponse


class LoginRequest(BaseModel):
    """
    Schema for user login.

    `hashed` marks a password that is already hashed with the user's
    stored method.
    """
    login: str = Field(..., description="Login name")
    password: str = Field(..., description="Password or pre-hashed credential")
    hashed: bool = Field(default=False, description="Password is already hashed")


class RegisterRequest(BaseModel):
    """Schema for self-registration."""
    login: str = Field(..., max_length=128, description="Unique login name")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.

    Returned by successful login/register operations.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    profile: UserProfileResponse
