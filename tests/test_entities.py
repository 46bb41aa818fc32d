"""Tests — report entities, wire format and period validation."""

import pytest

from tracker.core.entities import (
    EntryStatus,
    Report,
    ReportEntry,
    ReportStatus,
    is_inline_evidence,
    validate_period,
)
from tracker.core.exceptions import ValidationError


def _report_dict(**overrides):
    data = {
        "id": "r1",
        "departmentId": "dept-1",
        "period": "2025-01",
        "status": "DRAFT",
        "createdBy": "u-hod",
        "selectedGoals": ["goal-1"],
        "entries": [{
            "id": "e1",
            "reportId": "r1",
            "objectiveId": "obj-1-1",
            "status": "Completed",
            "narrative": "Curriculum reviewed",
            "supportNeeded": "Lab budget",
            "isApprovedByHOD": True,
            "createdAt": "2025-01-02T00:00:00+00:00",
        }],
    }
    data.update(overrides)
    return data


class TestPeriod:
    @pytest.mark.parametrize("period", ["2025-01", "1999-12"])
    def test_valid(self, period):
        assert validate_period(period) == period

    @pytest.mark.parametrize("period", ["2025-13", "2025-1", "25-01", "", None, "2025/01"])
    def test_invalid(self, period):
        with pytest.raises(ValidationError):
            validate_period(period)


class TestReportFromDict:
    def test_camel_case_keys_mapped(self):
        report = Report.from_dict(_report_dict())
        assert report.department_id == "dept-1"
        assert report.status is ReportStatus.DRAFT
        entry = report.entries[0]
        assert entry.status is EntryStatus.COMPLETED
        assert entry.support_needed == "Lab budget"
        assert entry.is_approved_by_hod is True

    def test_to_dict_restores_wire_keys(self):
        data = Report.from_dict(_report_dict()).to_dict()
        assert data["selectedGoals"] == ["goal-1"]
        assert data["entries"][0]["isApprovedByHOD"] is True
        assert data["revision"] == 0

    def test_duplicate_goals_collapsed(self):
        report = Report.from_dict(_report_dict(selectedGoals=["goal-1", "goal-2", "goal-1"]))
        assert report.selected_goals == ["goal-1", "goal-2"]

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            Report.from_dict(_report_dict(id=None))

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            Report.from_dict(_report_dict(status="ARCHIVED"))

    def test_entry_defaults(self):
        entry = ReportEntry.from_dict({"id": "e9", "objectiveId": "obj-1-1"}, report_id="r1")
        assert entry.report_id == "r1"
        assert entry.status is EntryStatus.IN_PROGRESS
        assert entry.is_approved_by_hod is False

    def test_content_key_ignores_revision(self):
        a = Report.from_dict(_report_dict(revision=1))
        b = Report.from_dict(_report_dict(revision=7))
        assert a.content_key() == b.content_key()


class TestReportState:
    def test_editable_states(self):
        report = Report.from_dict(_report_dict())
        assert report.is_editable
        report.status = ReportStatus.REVISION_REQUESTED
        assert report.is_editable
        report.status = ReportStatus.SUBMITTED
        assert not report.is_editable
        report.status = ReportStatus.ACCEPTED
        assert not report.is_editable

    def test_inline_evidence(self):
        assert is_inline_evidence("data:application/pdf;base64,AAAA")
        assert not is_inline_evidence("https://drive.example/doc")
        assert not is_inline_evidence(None)
