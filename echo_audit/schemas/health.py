"""
Health check schemas
"""

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    status: str = Field(..., description="'healthy' or 'degraded'")
    version: str = Field(..., description="API version")
    storage: bool = Field(..., description="Key-value store reachable")
