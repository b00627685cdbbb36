"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for router
handlers and tests. Field aliases match the camelCase names the frontend
sends.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterIn(BaseModel):
    """Payload for the registration endpoint."""
    name: str = Field(min_length=1, max_length=80)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    bio: Optional[str] = Field(default="", max_length=500)


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    email: EmailStr
    password: str


class CommentIn(BaseModel):
    """Text of a new or edited comment."""
    text: str = Field(min_length=1, max_length=1000)


class ProfileUpdateIn(BaseModel):
    """Partial update of the caller's own profile.

    Omitted fields are left unchanged.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=80)
    bio: Optional[str] = Field(default=None, max_length=500)
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture", max_length=500)
