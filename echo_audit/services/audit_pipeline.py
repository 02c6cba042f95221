"""
Frames + source -> oracle -> deterministic report.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

import structlog

from ..core.config import Settings
from ..core.exceptions import BadRequestError
from ..schemas.analysis import Frame
from ..schemas.audit import AuditReport, Violation
from .frames import prepare_frames
from .scoring import build_report, count_aaa_matches

logger = structlog.get_logger(__name__)


class ViolationOracle(Protocol):
    async def detect_violations(
        self,
        frames: Sequence[Frame],
        code: str,
        code_filename: Optional[str] = None,
    ) -> list[Violation]: ...


class AuditPipeline:
    """Runs one analysis; the returned report is scored locally, never by the oracle."""

    def __init__(
        self,
        oracle: ViolationOracle,
        *,
        max_frames: int = 10,
        max_code_chars: int = 200_000,
        frame_max_dimension: int = 960,
        frame_jpeg_quality: int = 70,
    ):
        self.oracle = oracle
        self.max_frames = max_frames
        self.max_code_chars = max_code_chars
        self.frame_max_dimension = frame_max_dimension
        self.frame_jpeg_quality = frame_jpeg_quality

    @classmethod
    def from_settings(cls, settings: Settings, oracle: ViolationOracle) -> "AuditPipeline":
        return cls(
            oracle,
            max_frames=settings.max_frames,
            max_code_chars=settings.max_code_chars,
            frame_max_dimension=settings.frame_max_dimension,
            frame_jpeg_quality=settings.frame_jpeg_quality,
        )

    async def analyze(
        self,
        frames: Sequence[Frame],
        code: str,
        code_filename: Optional[str] = None,
    ) -> AuditReport:
        if not code.strip():
            raise BadRequestError("Source code is required", code="MISSING_SOURCE")
        if len(code) > self.max_code_chars:
            raise BadRequestError(
                f"Source code exceeds {self.max_code_chars} characters",
                code="SOURCE_TOO_LARGE",
            )

        prepared = prepare_frames(
            frames,
            max_frames=self.max_frames,
            max_dimension=self.frame_max_dimension,
            quality=self.frame_jpeg_quality,
        )
        violations = await self.oracle.detect_violations(prepared, code, code_filename)
        report = build_report(violations)

        logger.info(
            "Analysis scored",
            frames=len(prepared),
            violations=len(violations),
            score=report.overall_score,
            level_a=report.wcag_compliance.level_a.passed,
            level_aa=report.wcag_compliance.level_aa.passed,
            aaa_matches=count_aaa_matches(violations),
        )
        return report
