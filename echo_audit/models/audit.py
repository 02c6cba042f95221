"""
Audit record
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..schemas.audit import AuditReport
from .base import StoredRecord


class ComplianceFlags(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    level_a: bool = Field(..., alias="levelA")
    level_aa: bool = Field(..., alias="levelAA")
    level_aaa: bool = Field(default=False, alias="levelAAA")


class SeverityCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class AuditRecord(StoredRecord):
    """
    Immutable, versioned audit stored under ``audit:{auditId}``.

    Only ``notes`` may change after creation, via ``with_notes``.
    """

    model_config = ConfigDict(frozen=True)

    audit_id: str
    project_id: str
    user_id: str
    audit_version: int = Field(..., ge=1)
    timestamp: datetime
    accessibility_score: int = Field(..., ge=0, le=100)
    wcag_compliance: ComplianceFlags
    total_violations: int = Field(..., ge=0)
    violations_by_severity: SeverityCounts
    full_report: AuditReport
    notes: str = ""

    def with_notes(self, notes: str) -> "AuditRecord":
        return self.model_copy(update={"notes": notes})
