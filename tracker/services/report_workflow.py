"""
Department Report Workflow: the state machine a department walks through
to build, approve and hand in its monthly report.

Steps:
    PERIOD_SELECT ──open_period──▶ GOAL_SELECT ──proceed──▶ ENTRIES ──review──▶ SUMMARY
                    (locked report) ─────────────────────────────────────────▶ SUMMARY

Business rules:
  - Only LECTURER / HOD users with a department may drive the workflow.
  - A report is editable while DRAFT or REVISION_REQUESTED. Any mutation of a
    locked report (SUBMITTED, ACCEPTED) is a no-op that returns None.
  - Entries added by an HOD are approved on creation; others wait for an HOD.
  - Lecturers edit/delete only their own entries; HODs edit any entry of
    their department. Nobody acts on another department's report.
  - Nothing but navigation runs from PERIOD_SELECT, and a locked report
    never leaves SUMMARY.
  - Only an HOD submits; unapproved entries are dropped on submit, after the
    HOD confirms.
  - A goal cannot be deselected while entries still sit under it.

Every mutation is written back through ReportStore.set_reports (bulk-set),
which persists locally before the sync client pushes upstream.

Usage:
    wf = ReportWorkflow(session, store)
    wf.open_period("2025-01")
    wf.toggle_goal("goal-1")
    wf.proceed_to_entries()
    entry = wf.add_entry("obj-1-1")
    wf.update_entry(entry.id, narrative="Two new programmes accredited")
    wf.review()
    wf.submit(confirm=lambda msg: True)
"""

from __future__ import annotations

import base64
import logging
import uuid
from enum import Enum

from tracker.core.capabilities import Capabilities
from tracker.core.catalog import DEFAULT_CATALOG
from tracker.core.entities import (
    EntryStatus,
    Report,
    ReportEntry,
    ReportStatus,
    utcnow_iso,
    validate_period,
)
from tracker.core.exceptions import NotFoundError, TransitionError, ValidationError

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 2 * 1024 * 1024  # 2 MiB

EDITABLE_ENTRY_FIELDS = frozenset({
    "status", "narrative", "metrics", "challenges", "support_needed", "evidence_url",
})


class WorkflowStep(str, Enum):
    PERIOD_SELECT = "PERIOD_SELECT"
    GOAL_SELECT = "GOAL_SELECT"
    ENTRIES = "ENTRIES"
    SUMMARY = "SUMMARY"


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class ReportWorkflow:
    """Per-session workflow engine for one department user.

    Args:
        session: SessionContext with a logged-in LECTURER or HOD.
        store: ReportStore holding the session's reports.
        catalog: ReferenceCatalog for goal/objective lookups.
        max_attachment_bytes: Upper bound for inlined evidence files.
        clock: Callable returning an ISO timestamp (tests pin it).
        id_factory: Callable returning new report/entry ids.
    """

    def __init__(
        self,
        session,
        store,
        catalog=DEFAULT_CATALOG,
        *,
        max_attachment_bytes: int = MAX_ATTACHMENT_BYTES,
        clock=utcnow_iso,
        id_factory=_new_id,
    ) -> None:
        self.session = session
        self.store = store
        self.catalog = catalog
        self.max_attachment_bytes = max_attachment_bytes
        self._clock = clock
        self._new_id = id_factory
        self.step = WorkflowStep.PERIOD_SELECT
        self.current_report_id: str | None = None

    # ── Helpers ──────────────────────────────────────────────────────────

    def _actor_and_caps(self):
        actor = self.session.require_actor()
        caps = Capabilities.for_actor(actor)
        caps.require("department_report", caps.can_report(),
                     "only department users file reports")
        return actor, caps

    @property
    def current_report(self) -> Report | None:
        if self.current_report_id is None:
            return None
        return self.store.get(self.current_report_id)

    def _require_report(self, caps: Capabilities, action: str = "view_report") -> Report:
        """The open report, checked against the acting user's department.

        Raises:
            TransitionError: no report open (PERIOD_SELECT).
            NotFoundError: the open report no longer exists.
            PermissionDenied: the report belongs to another department.
        """
        if self.current_report_id is None or self.step is WorkflowStep.PERIOD_SELECT:
            raise TransitionError(
                self.current_report_id, action, self.step.value, "no report is open",
            )
        report = self.current_report
        if report is None:
            raise NotFoundError("Report", self.current_report_id)
        caps.require(action, caps.can_work_on(report), "report belongs to another department")
        return report

    def _require_entry(self, report: Report, entry_id: str) -> ReportEntry:
        entry = report.entry(entry_id)
        if entry is None:
            raise NotFoundError("ReportEntry", entry_id)
        return entry

    def _save(self, report: Report) -> Report:
        reports = [report if r.id == report.id else r for r in self.store.all()]
        if not any(r.id == report.id for r in reports):
            reports.append(report)
        self.store.set_reports(reports)
        return self.store.get(report.id)

    def _enter(self, report: Report) -> Report:
        self.current_report_id = report.id
        self.step = WorkflowStep.GOAL_SELECT if report.is_editable else WorkflowStep.SUMMARY
        return report

    # ── PERIOD_SELECT ────────────────────────────────────────────────────

    def recent_reports(self) -> list[Report]:
        """This department's reports, newest period first."""
        actor, _ = self._actor_and_caps()
        own = [r for r in self.store.all() if r.department_id == actor.department_id]
        return sorted(own, key=lambda r: r.period, reverse=True)

    def open_period(self, period: str) -> Report:
        """Load the report for ``period`` or start a new DRAFT one."""
        actor, _ = self._actor_and_caps()
        period = validate_period(period)

        existing = self.store.find(actor.department_id, period)
        if existing is not None:
            logger.info(
                "Opened report %s for %s/%s (status=%s)",
                existing.id, actor.department_id, period, existing.status.value,
            )
            return self._enter(existing)

        report = Report(
            id=self._new_id(),
            department_id=actor.department_id,
            period=period,
            created_by=actor.id,
            status=ReportStatus.DRAFT,
        )
        report = self._save(report)
        logger.info(
            "Started report %s for %s/%s", report.id, actor.department_id, period,
            extra={"event_type": "report_created"},
        )
        return self._enter(report)

    def open_report(self, report_id: str) -> Report:
        """Open one of the department's existing reports."""
        actor, _ = self._actor_and_caps()
        report = self.store.get(report_id)
        if report is None or report.department_id != actor.department_id:
            raise NotFoundError("Report", report_id)
        return self._enter(report)

    def back_to_periods(self) -> None:
        self.step = WorkflowStep.PERIOD_SELECT

    # ── GOAL_SELECT ──────────────────────────────────────────────────────

    def toggle_goal(self, goal_id: str) -> Report | None:
        """Add or remove ``goal_id`` from the report's selected goals.

        Returns None (and changes nothing) if the report is locked.

        Raises:
            ValidationError: unknown goal, or deselecting a goal with entries.
        """
        _, caps = self._actor_and_caps()
        report = self._require_report(caps, "toggle_goal")
        if not report.is_editable:
            return None
        if self.catalog.goal(goal_id) is None:
            raise ValidationError(f"Unknown goal '{goal_id}'", details={"goal_id": goal_id})

        if goal_id in report.selected_goals:
            blocking = [
                e.id for e in report.entries
                if self.catalog.goal_id_for(e.objective_id) == goal_id
            ]
            if blocking:
                raise ValidationError(
                    "Delete the entries recorded under this goal before deselecting it",
                    details={"goal_id": goal_id, "entry_ids": blocking},
                    code="GOAL_HAS_ENTRIES",
                )
            report.selected_goals = [g for g in report.selected_goals if g != goal_id]
        else:
            report.selected_goals = report.selected_goals + [goal_id]
        return self._save(report)

    def proceed_to_entries(self) -> None:
        """Move on to entry editing. A locked report stays on SUMMARY."""
        _, caps = self._actor_and_caps()
        report = self._require_report(caps)
        if not report.is_editable:
            return
        if not report.selected_goals:
            raise ValidationError("Select at least one goal to continue")
        self.step = WorkflowStep.ENTRIES

    def back_to_goals(self) -> None:
        _, caps = self._actor_and_caps()
        report = self._require_report(caps)
        if report.is_editable:
            self.step = WorkflowStep.GOAL_SELECT

    # ── ENTRIES ──────────────────────────────────────────────────────────

    def objectives(self, goal_id: str, search: str = "") -> list[dict]:
        """Objectives of a selected goal with the entries recorded against each."""
        _, caps = self._actor_and_caps()
        report = self._require_report(caps)
        if goal_id not in report.selected_goals:
            return []
        rows = []
        for obj in self.catalog.objectives_for_goal(goal_id, search):
            rows.append({
                "objective": obj,
                "entries": [e for e in report.entries if e.objective_id == obj.id],
            })
        return rows

    def add_entry(self, objective_id: str) -> ReportEntry | None:
        """Append a new entry for ``objective_id``; HOD entries start approved."""
        actor, caps = self._actor_and_caps()
        report = self._require_report(caps, "add_entry")
        if not report.is_editable:
            return None

        goal_id = self.catalog.goal_id_for(objective_id)
        if goal_id is None:
            raise ValidationError(
                f"Unknown objective '{objective_id}'", details={"objective_id": objective_id},
            )
        if goal_id not in report.selected_goals:
            raise ValidationError(
                f"Goal '{goal_id}' is not selected for this report",
                details={"objective_id": objective_id, "goal_id": goal_id},
            )

        entry = ReportEntry(
            id=self._new_id(),
            report_id=report.id,
            objective_id=objective_id,
            status=EntryStatus.IN_PROGRESS,
            narrative="",
            created_at=self._clock(),
            submitted_by=actor.id,
            submitted_by_name=actor.name,
            is_approved_by_hod=caps.can_approve(report),
        )
        report.entries = report.entries + [entry]
        self._save(report)
        logger.info(
            "Entry %s added to report %s for %s by %s",
            entry.id, report.id, objective_id, actor.id,
        )
        return entry

    def update_entry(self, entry_id: str, **changes) -> ReportEntry | None:
        """Apply field ``changes`` to an entry the actor may edit.

        Raises:
            PermissionDenied: actor is neither HOD nor the entry's author.
            ValidationError: unknown field or invalid entry status.
        """
        _, caps = self._actor_and_caps()
        report = self._require_report(caps, "edit_entry")
        if not report.is_editable:
            return None
        entry = self._require_entry(report, entry_id)
        caps.require("edit_entry", caps.can_edit(report, entry), "only the author or the HOD may edit")

        unknown = set(changes) - EDITABLE_ENTRY_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields not editable: {', '.join(sorted(unknown))}",
                details={f: "not editable" for f in unknown},
            )
        if "status" in changes:
            try:
                changes["status"] = EntryStatus(changes["status"])
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid entry status '{changes['status']}'",
                    details={"status": changes["status"]},
                ) from exc

        for name, value in changes.items():
            setattr(entry, name, value)
        self._save(report)
        return entry

    def approve_entry(self, entry_id: str) -> ReportEntry | None:
        _, caps = self._actor_and_caps()
        report = self._require_report(caps, "approve_entry")
        if not report.is_editable:
            return None
        caps.require("approve_entry", caps.can_approve(report), "only the HOD approves entries")
        entry = self._require_entry(report, entry_id)
        entry.is_approved_by_hod = True
        self._save(report)
        logger.info("Entry %s approved in report %s", entry_id, report.id)
        return entry

    def delete_entry(self, entry_id: str) -> ReportEntry | None:
        """Remove an entry; returns the removed entry."""
        _, caps = self._actor_and_caps()
        report = self._require_report(caps, "delete_entry")
        if not report.is_editable:
            return None
        entry = self._require_entry(report, entry_id)
        caps.require("delete_entry", caps.can_delete(report, entry), "only the author or the HOD may delete")
        report.entries = [e for e in report.entries if e.id != entry_id]
        self._save(report)
        return entry

    def attach_evidence_url(self, entry_id: str, url: str | None) -> ReportEntry | None:
        """Point the entry's evidence at an external link ('' or None clears it)."""
        return self.update_entry(entry_id, evidence_url=(url or "").strip())

    def attach_evidence_file(
        self, entry_id: str, data: bytes, mime_type: str = "application/octet-stream",
    ) -> ReportEntry | None:
        """Inline a file as a ``data:`` URL.

        Returns None (and changes nothing) if the report is locked.

        Raises:
            PermissionDenied: actor may not edit the entry.
            ValidationError: file larger than ``max_attachment_bytes``.
        """
        _, caps = self._actor_and_caps()
        report = self._require_report(caps, "edit_entry")
        if not report.is_editable:
            return None
        entry = self._require_entry(report, entry_id)
        caps.require("edit_entry", caps.can_edit(report, entry), "only the author or the HOD may edit")
        if len(data) > self.max_attachment_bytes:
            raise ValidationError(
                "File is too large. Please upload a file smaller than "
                f"{self.max_attachment_bytes // (1024 * 1024)}MB.",
                details={"size": len(data), "limit": self.max_attachment_bytes},
                code="ATTACHMENT_TOO_LARGE",
            )
        encoded = base64.b64encode(data).decode("ascii")
        return self.update_entry(entry_id, evidence_url=f"data:{mime_type};base64,{encoded}")

    def review(self) -> dict:
        """Move to the summary step and return the summary."""
        _, caps = self._actor_and_caps()
        self._require_report(caps)
        self.step = WorkflowStep.SUMMARY
        return self.summary()

    # ── SUMMARY ──────────────────────────────────────────────────────────

    def summary(self) -> dict:
        """Selected goals (catalog order) with their entries.

        Entries whose goal is no longer selected are left out.
        """
        _, caps = self._actor_and_caps()
        report = self._require_report(caps)
        goals = []
        for goal in self.catalog.goals_in_order(report.selected_goals):
            entries = [
                e for e in report.entries
                if self.catalog.goal_id_for(e.objective_id) == goal.id
            ]
            goals.append({"goal": goal, "entries": entries})
        return {
            "report": report,
            "goals": goals,
            "unapproved_count": len(report.unapproved_entries),
            "is_locked": not report.is_editable,
        }

    def submit(self, confirm=None) -> Report | None:
        """Hand the report in to the faculty admin.

        Args:
            confirm: ``confirm(message) -> bool``; asked only when unapproved
                entries would be dropped. Declining (or no callback) cancels.

        Returns:
            The SUBMITTED report, or None when the HOD declined.

        Raises:
            PermissionDenied: actor is not the HOD.
            TransitionError: report is not editable.
        """
        actor, caps = self._actor_and_caps()
        report = self._require_report(caps, "submit_report")
        caps.require(
            "submit_report", caps.can_submit(report),
            "only the Head of Department can perform the final submission",
        )
        if not report.is_editable:
            raise TransitionError(report.id, "submit", report.status.value)

        unapproved = len(report.unapproved_entries)
        if unapproved:
            message = (
                f"There are {unapproved} unapproved entries. They will NOT be included "
                "in the final report to the Admin. Proceed?"
            )
            if confirm is None or not confirm(message):
                logger.info("Submission of report %s cancelled by %s", report.id, actor.id)
                return None

        report.entries = [e for e in report.entries if e.is_approved_by_hod]
        report.status = ReportStatus.SUBMITTED
        report.submitted_at = self._clock()
        saved = self._save(report)
        self.step = WorkflowStep.SUMMARY
        logger.info(
            "Report %s submitted by %s (%d entries, %d dropped)",
            report.id, actor.id, len(report.entries), unapproved,
            extra={"event_type": "report_submitted"},
        )
        return saved
