"""
Authentication and user schemas.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime


class UserCreate(BaseModel):
    """User registration request."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    passwordConfirm: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=200)
    account_type: str = Field(default="individual", pattern="^(individual|organization)$")
    phone: Optional[str] = Field(None, max_length=20)


class UserLogin(BaseModel):
    """User login request."""
    identity: EmailStr
    password: str


class UserResponse(BaseModel):
    """User response."""
    id: str
    email: str
    name: str
    verified: bool = False
    account_type: str = "individual"
    phone: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Auth token response."""
    token: str
    record: UserResponse


class Viewer(BaseModel):
    """
    The signed-in donor as seen by the donation services.

    Built from the authenticated user; services never touch the user model
    directly.
    """
    user_id: str
    email: str
    name: str

    class Config:
        frozen = True
