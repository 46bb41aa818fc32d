"""Past reports: searchable, read-only history for admins and departments."""

from __future__ import annotations

from tracker.core.capabilities import Capabilities
from tracker.core.catalog import DEFAULT_CATALOG
from tracker.core.exceptions import NotFoundError


class ReportArchive:
    """Reports the current actor may see, newest period first.

    Admins see every department; department users only their own.
    """

    def __init__(self, session, store, catalog=DEFAULT_CATALOG) -> None:
        self.session = session
        self.store = store
        self.catalog = catalog

    def _visible(self):
        caps = Capabilities.for_actor(self.session.require_actor())
        return [r for r in self.store.all() if caps.can_view_department(r.department_id)]

    def search(self, text: str = "", department_id: str = "all", year: str = "all"):
        """Filter by period/department-name text, department and year."""
        term = (text or "").strip().lower()
        results = []
        for report in self._visible():
            if department_id != "all" and report.department_id != department_id:
                continue
            if year != "all" and not report.period.startswith(f"{year}-"):
                continue
            if term and term not in report.period.lower() \
                    and term not in self.catalog.department_name(report.department_id).lower():
                continue
            results.append(report)
        return sorted(results, key=lambda r: r.period, reverse=True)

    def years(self) -> list[str]:
        return sorted({r.period.split("-")[0] for r in self._visible()}, reverse=True)

    def detail(self, report_id: str) -> dict:
        report = next((r for r in self._visible() if r.id == report_id), None)
        if report is None:
            raise NotFoundError("Report", report_id)
        goals = []
        for goal in self.catalog.goals_in_order(report.selected_goals):
            entries = [
                e for e in report.entries
                if self.catalog.goal_id_for(e.objective_id) == goal.id
            ]
            goals.append({"goal": goal, "entries": entries})
        return {
            "report": report,
            "department_name": self.catalog.department_name(report.department_id),
            "goals": goals,
        }
