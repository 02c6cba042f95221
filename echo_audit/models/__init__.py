"""
Records persisted in the key-value store
"""

from .audit import AuditRecord, ComplianceFlags, SeverityCounts
from .project import Project
from .user import User

__all__ = [
    "AuditRecord",
    "ComplianceFlags",
    "Project",
    "SeverityCounts",
    "User",
]
