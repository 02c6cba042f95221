"""
Assembles immutable audit records from scored reports.
"""

from datetime import datetime

from ..core.security import generate_id
from ..models.audit import AuditRecord, ComplianceFlags, SeverityCounts
from ..schemas.audit import AuditReport


def build_audit_record(
    report: AuditReport,
    *,
    project_id: str,
    user_id: str,
    audit_version: int,
    timestamp: datetime,
    audit_id: str | None = None,
) -> AuditRecord:
    """
    Wrap a deterministic report with identity and version metadata.

    The record's score, compliance flags and counts are copied from
    ``report``; callers must pass a report produced by ``build_report``.
    """
    if audit_version < 1:
        raise ValueError("audit_version must start at 1")

    compliance = report.wcag_compliance
    summary = report.summary

    return AuditRecord(
        audit_id=audit_id or generate_id("aud"),
        project_id=project_id,
        user_id=user_id,
        audit_version=audit_version,
        timestamp=timestamp,
        accessibility_score=report.overall_score,
        wcag_compliance=ComplianceFlags(
            level_a=compliance.level_a.passed,
            level_aa=compliance.level_aa.passed,
            level_aaa=not compliance.level_aaa.not_tested,
        ),
        total_violations=summary.total_violations,
        violations_by_severity=SeverityCounts(
            critical=summary.critical,
            high=summary.high,
            medium=summary.medium,
            low=summary.low,
        ),
        full_report=report,
        notes="",
    )
