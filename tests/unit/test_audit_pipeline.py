"""
Tests for services/audit_pipeline.py - analysis orchestration
"""

from unittest.mock import AsyncMock

import pytest

from echo_audit.core.exceptions import BadRequestError, OracleError
from echo_audit.schemas.analysis import Frame
from echo_audit.services.audit_pipeline import AuditPipeline


@pytest.fixture
def oracle(violation):
    oracle = AsyncMock()
    oracle.detect_violations.return_value = [violation("critical", "1.4.3"), violation("high", "2.4.7")]
    return oracle


@pytest.fixture
def frames(png_frame_data):
    data = png_frame_data()
    return [Frame(timestamp=f"00:{i * 2:02d}", image_data=data) for i in range(4)]


class TestAuditPipeline:

    @pytest.mark.asyncio
    async def test_report_is_scored_locally(self, oracle, frames):
        pipeline = AuditPipeline(oracle)

        report = await pipeline.analyze(frames, "<button></button>", "Button.tsx")

        assert report.overall_score == 77
        assert report.wcag_compliance.level_a.passed is True
        assert report.wcag_compliance.level_aa.passed is False
        assert report.summary.total_violations == 2

    @pytest.mark.asyncio
    async def test_oracle_receives_prepared_frames(self, oracle, frames):
        pipeline = AuditPipeline(oracle, max_frames=3)

        await pipeline.analyze(frames, "code")

        sent_frames, code, filename = oracle.detect_violations.await_args.args
        assert len(sent_frames) == 3
        assert code == "code"
        assert filename is None

    @pytest.mark.asyncio
    async def test_missing_source(self, oracle, frames):
        with pytest.raises(BadRequestError) as exc_info:
            await AuditPipeline(oracle).analyze(frames, "   ")

        assert exc_info.value.code == "MISSING_SOURCE"
        oracle.detect_violations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_source_too_large(self, oracle, frames):
        with pytest.raises(BadRequestError) as exc_info:
            await AuditPipeline(oracle, max_code_chars=10).analyze(frames, "x" * 11)

        assert exc_info.value.code == "SOURCE_TOO_LARGE"

    @pytest.mark.asyncio
    async def test_oracle_errors_propagate(self, oracle, frames):
        oracle.detect_violations.side_effect = OracleError("No response from model")

        with pytest.raises(OracleError):
            await AuditPipeline(oracle).analyze(frames, "code")
