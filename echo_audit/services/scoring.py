"""
Deterministic accessibility scoring.

Everything here is a pure function of the violation list. The oracle
that proposes violations is never asked for a score; saving an audit
always recomputes the report through :func:`build_report`.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Sequence

from ..core.security import utc_now
from ..schemas.audit import (
    AuditReport,
    AuditSummary,
    ComplianceLevel,
    Severity,
    UntestedLevel,
    Violation,
    WcagCompliance,
)

MAX_SCORE = 100

SEVERITY_WEIGHTS = {
    Severity.CRITICAL.value: 15,
    Severity.HIGH.value: 8,
    Severity.MEDIUM.value: 4,
    Severity.LOW.value: 2,
}

# Prefix-anchored: "1.1.10" counts as 1.1.1.
LEVEL_A_PATTERN = re.compile(
    r"^(?:1\.1\.1|1\.2\.[1-3]|1\.3\.[1-3]|1\.4\.1|2\.1\.[1-2]|2\.2\.[1-2]|2\.3\.1"
    r"|2\.4\.[1-4]|3\.1\.1|3\.2\.[1-2]|3\.3\.[1-2]|4\.1\.[1-2])"
)
LEVEL_AA_PATTERN = re.compile(
    r"^(?:1\.2\.[4-5]|1\.4\.[3-5]|2\.4\.[5-7]|3\.1\.2|3\.2\.[3-4]|3\.3\.[3-4])"
)
# Informational only; AAA conformance is never reported as evaluated.
LEVEL_AAA_PATTERN = re.compile(
    r"^(?:1\.2\.[6-9]|1\.4\.[6-9]|2\.2\.[3-6]|2\.3\.[2-3]|2\.4\.8|2\.4\.9|2\.4\.10"
    r"|3\.1\.[3-6]|3\.2\.5|3\.3\.[5-6])"
)


def severity_weight(severity: Optional[str]) -> int:
    """Points deducted for one violation of ``severity``; unknown severities cost nothing."""
    return SEVERITY_WEIGHTS.get(severity or "", 0)


def calculate_score(violations: Iterable[Violation]) -> int:
    """Score in [0, 100]: 100 minus the severity weight of every violation."""
    score = MAX_SCORE
    for violation in violations:
        score -= severity_weight(violation.severity)
    return max(0, round(score))


def _matching(violations: Sequence[Violation], pattern: re.Pattern) -> List[Violation]:
    return [
        v for v in violations
        if v.wcag_criterion and pattern.match(v.wcag_criterion)
    ]


def determine_wcag_compliance(violations: Sequence[Violation]) -> WcagCompliance:
    """
    Classify violations by WCAG conformance level.

    Level AA passes only when Level A also passes, so a project can never
    pass AA while failing A.
    """
    level_a = _matching(violations, LEVEL_A_PATTERN)
    level_aa = _matching(violations, LEVEL_AA_PATTERN)

    return WcagCompliance(
        level_a=ComplianceLevel(passed=not level_a, violations=len(level_a)),
        level_aa=ComplianceLevel(passed=not level_a and not level_aa, violations=len(level_aa)),
        level_aaa=UntestedLevel(not_tested=True),
    )


def count_aaa_matches(violations: Sequence[Violation]) -> int:
    """Number of violations citing a Level-AAA criterion (informational)."""
    return len(_matching(violations, LEVEL_AAA_PATTERN))


def summarize(violations: Sequence[Violation]) -> AuditSummary:
    counts = {severity.value: 0 for severity in Severity}
    for violation in violations:
        if violation.severity in counts:
            counts[violation.severity] += 1
    return AuditSummary(total_violations=len(violations), **counts)


def build_report(
    violations: Sequence[Violation],
    clock: Callable = utc_now,
) -> AuditReport:
    """Build a full report from a violation list; only ``analyzed_at`` varies between calls."""
    violations = list(violations)
    return AuditReport(
        overall_score=calculate_score(violations),
        wcag_compliance=determine_wcag_compliance(violations),
        violations=violations,
        summary=summarize(violations),
        analyzed_at=clock(),
    )
