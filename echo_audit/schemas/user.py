"""
User Pydantic schemas
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.user import User


class UserProfile(BaseModel):
    """Public view of a user; never carries the password hash."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(..., description="Unique identifier")
    email: str = Field(..., description="E-mail address")
    display_name: str = Field(..., description="Display name")
    created_at: datetime = Field(..., description="Creation timestamp")
    last_login_at: datetime = Field(..., description="Last login timestamp")

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            user_id=user.user_id,
            email=user.email,
            display_name=user.display_name,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )
