"""
Faculty Progress Tracker
Tests — department report workflow.

Covers:
    - period selection: create vs. load, step routing for locked reports
    - goal selection incl. blocked deselection while entries exist
    - entry add / edit / approve / delete with role rules
    - evidence links and inlined attachments (2 MiB cap)
    - submission: HOD only, unapproved entries dropped after confirmation
    - end-to-end submit → revision → resubmit cycle
    - department scope when users change on one session; step rules
"""

import pytest

from tracker.core.entities import EntryStatus, ReportStatus, is_inline_evidence
from tracker.core.exceptions import (
    NotFoundError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)
from tracker.core.session import Actor, Role, SessionContext
from tracker.services.admin_review import AdminReview
from tracker.services.report_workflow import ReportWorkflow, WorkflowStep

MIB = 1024 * 1024


@pytest.fixture()
def make_workflow(store, ids, clock):
    def _make(session):
        return ReportWorkflow(session, store, id_factory=ids, clock=clock)
    return _make


@pytest.fixture()
def hod_wf(make_workflow, hod_session):
    return make_workflow(hod_session)


@pytest.fixture()
def lec_wf(make_workflow, lecturer_session):
    return make_workflow(lecturer_session)


def _ready_for_entries(wf, period="2025-01", goal="goal-1"):
    wf.open_period(period)
    wf.toggle_goal(goal)
    wf.proceed_to_entries()
    return wf


# ═════════════════════════════════════════════════════════════════════════════
# PERIOD & GOAL SELECTION
# ═════════════════════════════════════════════════════════════════════════════

class TestOpenPeriod:
    def test_creates_draft(self, hod_wf, store, hod):
        report = hod_wf.open_period("2025-01")
        assert report.status is ReportStatus.DRAFT
        assert report.department_id == "dept-1"
        assert report.created_by == hod.id
        assert report.selected_goals == [] and report.entries == []
        assert hod_wf.step is WorkflowStep.GOAL_SELECT
        assert store.get(report.id) is not None

    def test_reopening_loads_same_report(self, hod_wf, store):
        first = hod_wf.open_period("2025-01")
        again = hod_wf.open_period("2025-01")
        assert again.id == first.id
        assert len(store) == 1

    def test_invalid_period(self, hod_wf):
        with pytest.raises(ValidationError):
            hod_wf.open_period("January")

    def test_locked_report_opens_on_summary(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.submit(confirm=lambda msg: True)
        hod_wf.back_to_periods()
        hod_wf.open_period("2025-01")
        assert hod_wf.step is WorkflowStep.SUMMARY

    def test_admin_cannot_drive_workflow(self, make_workflow, admin_session):
        with pytest.raises(PermissionDenied):
            make_workflow(admin_session).open_period("2025-01")

    def test_recent_reports_newest_first(self, hod_wf):
        hod_wf.open_period("2024-11")
        hod_wf.open_period("2025-02")
        hod_wf.open_period("2025-01")
        assert [r.period for r in hod_wf.recent_reports()] == ["2025-02", "2025-01", "2024-11"]

    def test_open_report_of_other_department(self, hod_wf, store, make_workflow):
        other = SessionContext()
        other.login(Actor(id="u-x", name="X", role=Role.HOD, department_id="dept-2"))
        report = make_workflow(other).open_period("2025-01")
        with pytest.raises(NotFoundError):
            hod_wf.open_report(report.id)


class TestGoalSelection:
    def test_toggle_on_and_off(self, hod_wf):
        hod_wf.open_period("2025-01")
        assert hod_wf.toggle_goal("goal-2").selected_goals == ["goal-2"]
        assert hod_wf.toggle_goal("goal-2").selected_goals == []

    def test_unknown_goal(self, hod_wf):
        hod_wf.open_period("2025-01")
        with pytest.raises(ValidationError):
            hod_wf.toggle_goal("goal-99")

    def test_proceed_needs_a_goal(self, hod_wf):
        hod_wf.open_period("2025-01")
        with pytest.raises(ValidationError):
            hod_wf.proceed_to_entries()
        assert hod_wf.step is WorkflowStep.GOAL_SELECT

    def test_deselect_blocked_while_entries_exist(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.add_entry("obj-1-1")
        with pytest.raises(ValidationError) as exc_info:
            hod_wf.toggle_goal("goal-1")
        assert exc_info.value.code == "GOAL_HAS_ENTRIES"
        assert hod_wf.current_report.selected_goals == ["goal-1"]

    def test_toggle_on_locked_report_is_noop(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.submit(confirm=lambda msg: True)
        assert hod_wf.toggle_goal("goal-3") is None
        assert hod_wf.current_report.selected_goals == ["goal-1"]


# ═════════════════════════════════════════════════════════════════════════════
# ENTRIES
# ═════════════════════════════════════════════════════════════════════════════

class TestEntries:
    def test_hod_entry_auto_approved(self, hod_wf, clock):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        assert entry.is_approved_by_hod is True
        assert entry.status is EntryStatus.IN_PROGRESS
        assert entry.created_at == clock()

    def test_lecturer_entry_needs_approval(self, lec_wf, lecturer):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")
        assert entry.is_approved_by_hod is False
        assert entry.submitted_by == lecturer.id
        assert entry.submitted_by_name == lecturer.name

    def test_objective_of_unselected_goal(self, hod_wf):
        _ready_for_entries(hod_wf)
        with pytest.raises(ValidationError):
            hod_wf.add_entry("obj-2-1")

    def test_unknown_objective(self, hod_wf):
        _ready_for_entries(hod_wf)
        with pytest.raises(ValidationError):
            hod_wf.add_entry("obj-404")

    def test_update_fields(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        updated = hod_wf.update_entry(
            entry.id, narrative="Two programmes accredited", status="Completed",
            metrics="2/2", support_needed="None",
        )
        assert updated.status is EntryStatus.COMPLETED
        stored = hod_wf.current_report.entry(entry.id)
        assert stored.narrative == "Two programmes accredited"
        assert stored.metrics == "2/2"

    def test_update_rejects_bad_status_and_fields(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        with pytest.raises(ValidationError):
            hod_wf.update_entry(entry.id, status="Done-ish")
        with pytest.raises(ValidationError):
            hod_wf.update_entry(entry.id, is_approved_by_hod=True)

    def test_lecturer_cannot_touch_others_entries(
        self, lec_wf, make_workflow, other_lecturer,
    ):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")

        other = SessionContext()
        other.login(other_lecturer)
        other_wf = make_workflow(other)
        other_wf.open_period("2025-01")
        with pytest.raises(PermissionDenied):
            other_wf.update_entry(entry.id, narrative="not mine")
        with pytest.raises(PermissionDenied):
            other_wf.delete_entry(entry.id)

    def test_hod_edits_lecturer_entry(self, lec_wf, hod_wf):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")
        hod_wf.open_period("2025-01")
        assert hod_wf.update_entry(entry.id, narrative="Reviewed").narrative == "Reviewed"

    def test_only_hod_approves(self, lec_wf, hod_wf):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")
        with pytest.raises(PermissionDenied):
            lec_wf.approve_entry(entry.id)
        hod_wf.open_period("2025-01")
        assert hod_wf.approve_entry(entry.id).is_approved_by_hod is True

    def test_delete_entry(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        hod_wf.delete_entry(entry.id)
        assert hod_wf.current_report.entries == []

    def test_unknown_entry(self, hod_wf):
        _ready_for_entries(hod_wf)
        with pytest.raises(NotFoundError):
            hod_wf.update_entry("missing", narrative="x")

    def test_objectives_lists_entries_per_objective(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        rows = {row["objective"].id: row["entries"] for row in hod_wf.objectives("goal-1")}
        assert [e.id for e in rows["obj-1-1"]] == [entry.id]
        assert hod_wf.objectives("goal-2") == []


class TestEvidence:
    def test_link(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        updated = hod_wf.attach_evidence_url(entry.id, " https://drive.example/minutes ")
        assert updated.evidence_url == "https://drive.example/minutes"
        assert hod_wf.attach_evidence_url(entry.id, None).evidence_url == ""

    def test_three_mib_file_rejected(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        with pytest.raises(ValidationError) as exc_info:
            hod_wf.attach_evidence_file(entry.id, b"\x00" * (3 * MIB), "application/pdf")
        assert exc_info.value.code == "ATTACHMENT_TOO_LARGE"
        assert hod_wf.current_report.entry(entry.id).evidence_url is None

    def test_one_mib_file_inlined(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        updated = hod_wf.attach_evidence_file(entry.id, b"\x01" * MIB, "application/pdf")
        assert updated.evidence_url.startswith("data:application/pdf;base64,")
        assert updated.has_inline_evidence
        assert not updated.evidence_url.startswith("http")
        assert is_inline_evidence(hod_wf.current_report.entry(entry.id).evidence_url)

    def test_oversized_file_on_locked_report_is_noop(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        hod_wf.submit()
        assert hod_wf.attach_evidence_file(entry.id, b"\x00" * (3 * MIB), "application/pdf") is None
        assert hod_wf.current_report.entry(entry.id).evidence_url is None

    def test_file_on_someone_elses_entry(self, lec_wf, make_workflow, other_lecturer):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")
        other = SessionContext()
        other.login(other_lecturer)
        other_wf = make_workflow(other)
        other_wf.open_period("2025-01")
        with pytest.raises(PermissionDenied):
            other_wf.attach_evidence_file(entry.id, b"\x00" * (3 * MIB), "application/pdf")


# ═════════════════════════════════════════════════════════════════════════════
# SUMMARY & SUBMISSION
# ═════════════════════════════════════════════════════════════════════════════

class TestSummary:
    def test_grouped_in_catalog_order(self, hod_wf):
        hod_wf.open_period("2025-01")
        hod_wf.toggle_goal("goal-2")
        hod_wf.toggle_goal("goal-1")
        hod_wf.proceed_to_entries()
        hod_wf.add_entry("obj-2-1")
        summary = hod_wf.review()
        assert hod_wf.step is WorkflowStep.SUMMARY
        assert [g["goal"].id for g in summary["goals"]] == ["goal-1", "goal-2"]
        assert len(summary["goals"][1]["entries"]) == 1
        assert summary["unapproved_count"] == 0
        assert summary["is_locked"] is False


class TestSubmit:
    def test_lecturer_cannot_submit(self, lec_wf):
        _ready_for_entries(lec_wf)
        with pytest.raises(PermissionDenied):
            lec_wf.submit(confirm=lambda msg: True)
        assert lec_wf.current_report.status is ReportStatus.DRAFT

    def test_declined_confirmation_changes_nothing(self, lec_wf, hod_wf):
        _ready_for_entries(lec_wf)
        lec_wf.add_entry("obj-1-1")
        hod_wf.open_period("2025-01")
        prompts = []
        assert hod_wf.submit(confirm=lambda msg: prompts.append(msg) or False) is None
        assert "1 unapproved entries" in prompts[0]
        report = hod_wf.current_report
        assert report.status is ReportStatus.DRAFT
        assert len(report.entries) == 1

    def test_unapproved_entries_dropped(self, lec_wf, hod_wf, clock):
        _ready_for_entries(lec_wf)
        lec_wf.add_entry("obj-1-1")
        hod_wf.open_period("2025-01")
        kept = hod_wf.add_entry("obj-1-2")
        report = hod_wf.submit(confirm=lambda msg: True)
        assert report.status is ReportStatus.SUBMITTED
        assert report.submitted_at == clock()
        assert [e.id for e in report.entries] == [kept.id]

    def test_no_prompt_when_everything_approved(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.add_entry("obj-1-1")
        assert hod_wf.submit().status is ReportStatus.SUBMITTED

    def test_resubmit_locked_report(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.submit()
        with pytest.raises(TransitionError):
            hod_wf.submit()

    def test_locked_report_mutations_are_noops(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        hod_wf.submit()
        assert hod_wf.add_entry("obj-1-1") is None
        assert hod_wf.update_entry(entry.id, narrative="late edit") is None
        assert hod_wf.delete_entry(entry.id) is None
        assert hod_wf.current_report.entry(entry.id).narrative == ""


class TestFullCycle:
    def test_lecturer_entry_approved_and_submitted_by_hod(self, lec_wf, hod_wf):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")
        assert entry.is_approved_by_hod is False
        with pytest.raises(PermissionDenied):
            lec_wf.submit(confirm=lambda msg: True)
        assert lec_wf.current_report.status is ReportStatus.DRAFT

        hod_wf.open_period("2025-01")
        hod_wf.approve_entry(entry.id)
        report = hod_wf.submit()
        assert report.status is ReportStatus.SUBMITTED
        assert len(report.entries) == 1

    def test_revision_and_resubmission(self, hod_wf, lec_wf, store, admin_session):
        _ready_for_entries(lec_wf)
        entry = lec_wf.add_entry("obj-1-1")
        hod_wf.open_period("2025-01")
        hod_wf.approve_entry(entry.id)
        report = hod_wf.submit()

        review = AdminReview(admin_session, store)
        assert review.request_revision(report.id, confirm=lambda msg: True).status \
            is ReportStatus.REVISION_REQUESTED

        lec_wf.open_period("2025-01")
        assert lec_wf.step is WorkflowStep.GOAL_SELECT
        lec_wf.update_entry(entry.id, narrative="Added accreditation letters")

        hod_wf.open_period("2025-01")
        resubmitted = hod_wf.submit()
        assert resubmitted.status is ReportStatus.SUBMITTED
        assert resubmitted.entries[0].narrative == "Added accreditation letters"


# ═════════════════════════════════════════════════════════════════════════════
# DEPARTMENT SCOPE & STEP RULES
# ═════════════════════════════════════════════════════════════════════════════

class TestDepartmentScope:
    def test_other_department_hod_on_same_session(
        self, make_workflow, lecturer, store,
    ):
        session = SessionContext()
        session.login(lecturer)
        wf = make_workflow(session)
        _ready_for_entries(wf)
        entry = wf.add_entry("obj-1-1")
        session.logout()

        session.login(Actor(id="u-hod-2", name="Other HOD", role=Role.HOD, department_id="dept-2"))
        with pytest.raises(PermissionDenied):
            wf.approve_entry(entry.id)
        with pytest.raises(PermissionDenied):
            wf.submit(confirm=lambda msg: True)
        with pytest.raises(PermissionDenied):
            wf.update_entry(entry.id, narrative="not ours")
        with pytest.raises(PermissionDenied):
            wf.summary()

        report = store.get(wf.current_report_id)
        assert report.status is ReportStatus.DRAFT
        assert report.entry(entry.id).is_approved_by_hod is False
        assert report.entry(entry.id).narrative == ""

    def test_own_department_hod_takes_over_session(self, make_workflow, lecturer, hod):
        session = SessionContext()
        session.login(lecturer)
        wf = make_workflow(session)
        _ready_for_entries(wf)
        entry = wf.add_entry("obj-1-1")
        session.logout()

        session.login(hod)
        assert wf.approve_entry(entry.id).is_approved_by_hod is True
        assert wf.submit().status is ReportStatus.SUBMITTED


class TestStepRules:
    def test_locked_report_stays_on_summary(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.submit()
        hod_wf.back_to_periods()
        hod_wf.open_period("2025-01")
        assert hod_wf.step is WorkflowStep.SUMMARY

        hod_wf.proceed_to_entries()
        assert hod_wf.step is WorkflowStep.SUMMARY
        hod_wf.back_to_goals()
        assert hod_wf.step is WorkflowStep.SUMMARY

    def test_editable_report_navigates(self, hod_wf):
        _ready_for_entries(hod_wf)
        hod_wf.back_to_goals()
        assert hod_wf.step is WorkflowStep.GOAL_SELECT
        hod_wf.proceed_to_entries()
        assert hod_wf.step is WorkflowStep.ENTRIES

    def test_nothing_runs_from_period_select(self, hod_wf):
        _ready_for_entries(hod_wf)
        entry = hod_wf.add_entry("obj-1-1")
        hod_wf.back_to_periods()
        with pytest.raises(TransitionError):
            hod_wf.add_entry("obj-1-2")
        with pytest.raises(TransitionError):
            hod_wf.submit()
        with pytest.raises(TransitionError):
            hod_wf.delete_entry(entry.id)
        assert hod_wf.current_report.status is ReportStatus.DRAFT
        assert len(hod_wf.current_report.entries) == 1

    def test_before_any_period_is_opened(self, hod_wf):
        with pytest.raises(TransitionError):
            hod_wf.toggle_goal("goal-1")
