"""
Project record
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import StoredRecord


class Project(StoredRecord):
    """
    Project stored under ``project:{projectId}``.

    ``audit_count`` doubles as the version counter for the next audit and
    never decreases. ``latest_score`` caches the score of the newest audit.
    """
    project_id: str = Field(..., description="Unique identifier")
    user_id: str = Field(..., description="Owner")
    project_name: str = Field(..., description="Sanitized project name")
    website_url: Optional[str] = Field(None, description="Sanitized website URL")
    description: Optional[str] = Field(None, description="Sanitized description")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    audit_count: int = Field(default=0, ge=0, description="Number of audits ever saved")
    latest_score: int = Field(default=0, description="Score of the newest audit")
