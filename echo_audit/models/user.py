"""
User record
"""

from datetime import datetime

from pydantic import Field

from .base import StoredRecord


class User(StoredRecord):
    """Account stored under ``user:{userId}``."""
    user_id: str = Field(..., description="Unique identifier")
    email: str = Field(..., description="Lowercased e-mail address")
    password_hash: str = Field(..., description="Hex PBKDF2-SHA256 digest")
    display_name: str = Field(..., description="Sanitized display name")
    created_at: datetime = Field(..., description="Creation timestamp")
    last_login_at: datetime = Field(..., description="Last successful login")

    def __str__(self) -> str:
        return f"User(user_id={self.user_id}, email={self.email})"
