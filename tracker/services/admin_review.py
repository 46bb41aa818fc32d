"""
Admin Review: the Dean's office view over every department's reports.

Read side:
  - period_stats      headline numbers for one period
  - department_view   one row per department (NOT_STARTED when no report)
  - goal_view         every entry of the period grouped under its goal
  - report_detail     one report grouped by goal

Write side (SUBMITTED reports only, after confirmation):
  - accept_report     SUBMITTED → ACCEPTED (final)
  - request_revision  SUBMITTED → REVISION_REQUESTED (department may edit again)
"""

from __future__ import annotations

import logging
import math

from tracker.core.capabilities import Capabilities
from tracker.core.catalog import DEFAULT_CATALOG
from tracker.core.entities import SUBMITTED_OR_LATER, ReportStatus
from tracker.core.exceptions import NotFoundError, TransitionError

logger = logging.getLogger(__name__)

NOT_STARTED = "NOT_STARTED"

ACCEPT_PROMPT = "Are you sure you want to accept this report? It will be marked as final."
REVISION_PROMPT = (
    "Are you sure you want to request a revision for this report? "
    "It will be unlocked for the department."
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class AdminReview:
    """Review engine for ADMIN actors.

    Args:
        session: SessionContext with a logged-in ADMIN.
        store: ReportStore holding every department's reports.
        catalog: ReferenceCatalog.
        gateway: Optional ReportGateway used by ``check_connection``.
    """

    def __init__(self, session, store, catalog=DEFAULT_CATALOG, gateway=None) -> None:
        self.session = session
        self.store = store
        self.catalog = catalog
        self.gateway = gateway

    def _require_admin(self, action: str = "review_reports"):
        actor = self.session.require_actor()
        caps = Capabilities.for_actor(actor)
        caps.require(action, caps.can_review(), "only the faculty admin reviews reports")
        return actor

    def _period_reports(self, period: str):
        return [r for r in self.store.all() if r.period == period]

    def _entries_by_goal(self, reports):
        grouped: dict[str, list[dict]] = {g.id: [] for g in self.catalog.goals}
        for report in reports:
            dept_name = self.catalog.department_name(report.department_id)
            for entry in report.entries:
                goal_id = self.catalog.goal_id_for(entry.objective_id)
                if goal_id in grouped:
                    grouped[goal_id].append({
                        "entry": entry,
                        "report_id": report.id,
                        "department_id": report.department_id,
                        "department_name": dept_name,
                    })
        return grouped

    # ── Read side ────────────────────────────────────────────────────────

    def period_stats(self, period: str) -> dict:
        """Submission counters for ``period``.

        ``submitted`` counts SUBMITTED and ACCEPTED reports; the rate is a
        whole percentage rounded half up.
        """
        self._require_admin()
        reports = self._period_reports(period)
        total = len(self.catalog.departments)
        submitted = sum(1 for r in reports if r.status in SUBMITTED_OR_LATER)
        rate = round_half_up(100 * submitted / total) if total else 0
        return {
            "period": period,
            "total": total,
            "submitted": submitted,
            "pending": total - submitted,
            "submission_rate": rate,
            "items_reported": sum(len(r.entries) for r in reports),
        }

    def department_view(self, period: str, department_id: str = "all") -> list[dict]:
        self._require_admin()
        by_dept = {r.department_id: r for r in self._period_reports(period)}
        rows = []
        for dept in self.catalog.departments:
            if department_id != "all" and dept.id != department_id:
                continue
            report = by_dept.get(dept.id)
            rows.append({
                "department_id": dept.id,
                "department_name": dept.name,
                "report_id": report.id if report else None,
                "status": report.status.value if report else NOT_STARTED,
                "entry_count": len(report.entries) if report else 0,
                "submitted_at": report.submitted_at if report else None,
            })
        return rows

    def goal_view(self, period: str) -> list[dict]:
        """Every goal in catalog order with all departments' entries under it."""
        self._require_admin()
        grouped = self._entries_by_goal(self._period_reports(period))
        return [{"goal": g, "entries": grouped[g.id]} for g in self.catalog.goals]

    def report_detail(self, report_id: str) -> dict:
        self._require_admin()
        report = self.store.get(report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        goals = []
        for goal in self.catalog.goals_in_order(report.selected_goals):
            goals.append({
                "goal": goal,
                "entries": [
                    e for e in report.entries
                    if self.catalog.goal_id_for(e.objective_id) == goal.id
                ],
            })
        return {
            "report": report,
            "department_name": self.catalog.department_name(report.department_id),
            "goals": goals,
        }

    # ── Write side ───────────────────────────────────────────────────────

    def accept_report(self, report_id: str, confirm=None):
        return self._decide(report_id, ReportStatus.ACCEPTED, "accept", ACCEPT_PROMPT, confirm)

    def request_revision(self, report_id: str, confirm=None):
        return self._decide(
            report_id, ReportStatus.REVISION_REQUESTED, "request_revision",
            REVISION_PROMPT, confirm,
        )

    def _decide(self, report_id, target: ReportStatus, action: str, prompt: str, confirm):
        """Move a SUBMITTED report to ``target`` once ``confirm(prompt)`` agrees.

        Returns the updated report, or None when not confirmed.

        Raises:
            NotFoundError: unknown report.
            TransitionError: report is not SUBMITTED.
        """
        actor = self._require_admin(action)
        reports = self.store.all()
        report = next((r for r in reports if r.id == report_id), None)
        if report is None:
            raise NotFoundError("Report", report_id)
        if report.status is not ReportStatus.SUBMITTED:
            raise TransitionError(
                report_id, action, report.status.value, "only submitted reports can be reviewed",
            )
        if confirm is None or not confirm(prompt):
            return None

        report.status = target
        self.store.set_reports(reports)
        logger.info(
            "Report %s %s by %s", report_id, target.value, actor.id,
            extra={"event_type": f"report_{action}", "report_id": report_id,
                   "department_id": report.department_id},
        )
        return self.store.get(report_id)

    # ── Diagnostics ──────────────────────────────────────────────────────

    def check_connection(self) -> dict:
        """Probe the report API; never raises for network faults."""
        self._require_admin("check_connection")
        if self.gateway is None:
            return {"status": "ERROR", "message": "No cloud connection configured."}
        result = self.gateway.probe()
        if result.ok and isinstance(result.data, dict) and result.data.get("status") == "ok":
            return {
                "status": "CONNECTED",
                "message": result.data.get("message") or "Cloud connection verified.",
                "time": result.data.get("time"),
            }
        return {"status": "ERROR", "message": result.error or "Connection failed"}
