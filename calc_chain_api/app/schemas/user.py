"""
Pydantic models for user data.

Defines the registration/login payload and the public user
representation.  The password hash never leaves the service layer.
"""

from pydantic import BaseModel, Field


class UserCredentials(BaseModel):
    """Payload for both registration and login.

    Only presence is checked here; length rules for registration are
    enforced by ``UserService.register`` so they also apply outside
    of HTTP.
    """

    username: str = Field(..., min_length=1, examples=["alice"])
    password: str = Field(..., min_length=1, examples=["password1"])


class UserRead(BaseModel):
    """Public view of a user."""

    id: str
    username: str

    model_config = {
        "from_attributes": True,
    }


class AuthResponse(BaseModel):
    """Token issued on registration or login."""

    token: str
    user: UserRead
