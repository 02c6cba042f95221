"""
Project Pydantic schemas
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProjectCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_name: str = Field(..., min_length=1, max_length=200)
    website_url: Optional[str] = Field(None, max_length=2048)
    description: Optional[str] = Field(None, max_length=5000)


class ProjectUpdate(BaseModel):
    """Fields left out are unchanged."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_name: Optional[str] = Field(None, min_length=1, max_length=200)
    website_url: Optional[str] = Field(None, max_length=2048)
    description: Optional[str] = Field(None, max_length=5000)


class ProjectDeleted(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str
    audits_deleted: int
