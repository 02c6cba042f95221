"""
Violation and audit report schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class VisualEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    frame_timestamp: str = ""
    description: str = ""
    frame_image_url: Optional[str] = None


class CodeEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: str = ""
    line: Optional[int] = None
    snippet: str = ""


class SuggestedFix(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = ""
    explanation: str = ""


class Violation(BaseModel):
    """
    A single accessibility defect proposed by the oracle.

    ``severity`` is kept as a plain string so stored reports with an
    unrecognised severity still load; such violations carry no weight.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    severity: Optional[str] = None
    wcag_criterion: Optional[str] = None
    title: str = ""
    description: str = ""
    visual_evidence: Optional[VisualEvidence] = None
    code_evidence: Optional[CodeEvidence] = None
    reasoning: Optional[str] = None
    user_impact: str = ""
    suggested_fix: Optional[SuggestedFix] = None


class ComplianceLevel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    passed: bool = Field(..., alias="pass")
    violations: int = 0


class UntestedLevel(BaseModel):
    not_tested: bool = True


class WcagCompliance(BaseModel):
    level_a: ComplianceLevel
    level_aa: ComplianceLevel
    level_aaa: UntestedLevel = Field(default_factory=UntestedLevel)


class AuditSummary(BaseModel):
    total_violations: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class AuditReport(BaseModel):
    """Scored report; every field except ``analyzed_at`` derives from ``violations``."""

    overall_score: int
    wcag_compliance: WcagCompliance
    violations: List[Violation] = Field(default_factory=list)
    summary: AuditSummary
    analyzed_at: Optional[datetime] = None


class CandidateReport(BaseModel):
    """
    Report submitted for saving.

    Only ``violations`` is read; aggregate fields are accepted so a client
    can post back a report it was shown, but they are never trusted.
    """

    model_config = ConfigDict(extra="ignore")

    violations: List[Violation] = Field(default_factory=list)
    overall_score: Optional[Any] = None
    summary: Optional[Any] = None
    wcag_compliance: Optional[Any] = None
    analyzed_at: Optional[Any] = None


class NotesUpdate(BaseModel):
    notes: str = Field(default="", max_length=10_000)
