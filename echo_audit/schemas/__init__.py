"""
Pydantic schemas for the Echo-Audit API
"""

from .analysis import AnalyzeRequest, CaptureSettings, Frame
from .audit import (
    AuditReport,
    AuditSummary,
    CandidateReport,
    ComplianceLevel,
    NotesUpdate,
    Severity,
    Violation,
    WcagCompliance,
)
from .auth import AuthResponse, ChangePasswordRequest, LoginRequest, SignupRequest
from .health import HealthStatus
from .project import ProjectCreate, ProjectDeleted, ProjectUpdate
from .user import UserProfile
