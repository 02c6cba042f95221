"""
Tests for services/audit_builder.py - audit record assembly
"""

import json
from datetime import datetime, timezone

import pytest

from echo_audit.models.audit import AuditRecord
from echo_audit.services.audit_builder import build_audit_record
from echo_audit.services.scoring import build_report


NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestBuildAuditRecord:

    def test_copies_report_aggregates(self, violation):
        report = build_report([violation("critical", "1.4.3"), violation("low", "2.4.7")], clock=lambda: NOW)

        record = build_audit_record(report, project_id="proj_1", user_id="user_1", audit_version=1, timestamp=NOW)

        assert record.accessibility_score == 83
        assert record.wcag_compliance.level_a is True
        assert record.wcag_compliance.level_aa is False
        assert record.wcag_compliance.level_aaa is False
        assert record.total_violations == 2
        assert record.violations_by_severity.critical == 1
        assert record.violations_by_severity.low == 1
        assert record.full_report == report
        assert record.notes == ""

    def test_generates_audit_id(self, violation):
        record = build_audit_record(
            build_report([]), project_id="p", user_id="u", audit_version=1, timestamp=NOW
        )
        assert record.audit_id.startswith("aud_")

    def test_version_must_start_at_one(self):
        with pytest.raises(ValueError):
            build_audit_record(build_report([]), project_id="p", user_id="u", audit_version=0, timestamp=NOW)

    def test_serialized_keys(self):
        record = build_audit_record(
            build_report([]), project_id="p", user_id="u", audit_version=2, timestamp=NOW, audit_id="aud_x"
        )
        data = json.loads(record.to_json())

        assert data["auditId"] == "aud_x"
        assert data["auditVersion"] == 2
        assert data["wcagCompliance"] == {"levelA": True, "levelAA": True, "levelAAA": False}
        assert data["fullReport"]["wcag_compliance"]["level_a"]["pass"] is True
        assert AuditRecord.from_json(record.to_json()) == record

    def test_only_notes_can_change(self):
        record = build_audit_record(
            build_report([]), project_id="p", user_id="u", audit_version=1, timestamp=NOW
        )
        updated = record.with_notes("Checked with screen reader")

        assert updated.notes == "Checked with screen reader"
        assert updated.model_dump(exclude={"notes"}) == record.model_dump(exclude={"notes"})
        with pytest.raises(Exception):
            record.notes = "mutated"
