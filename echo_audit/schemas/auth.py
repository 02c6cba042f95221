"""
Authentication Pydantic schemas
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .user import UserProfile


class SignupRequest(BaseModel):
    """Account creation request"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., max_length=255, description="Password")
    confirm_password: Optional[str] = Field(None, max_length=255, description="Password confirmation")
    display_name: str = Field(..., min_length=1, max_length=100, description="Display name")


class LoginRequest(BaseModel):
    """Login request"""
    email: str = Field(..., min_length=1, max_length=255, description="Email address")
    password: str = Field(..., min_length=1, max_length=255, description="Password")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str = Field(..., min_length=1, max_length=255)
    new_password: str = Field(..., max_length=255)
    confirm_password: Optional[str] = Field(None, max_length=255)


class AuthResponse(BaseModel):
    """Signup / login response"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user: UserProfile = Field(..., description="User information")
    csrf_token: str = Field(..., description="Session token; send it as a bearer token")
    session_timeout: int = Field(..., description="Idle seconds before the session expires")
