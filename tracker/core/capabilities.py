"""
Per-actor capability set.

Every role check the engines make goes through here, evaluated once per
operation, so the rules can be tested without any report or store.

    caps = Capabilities.for_actor(actor)
    caps.require("submit_report", caps.can_submit(report))
"""

from __future__ import annotations

from dataclasses import dataclass

from tracker.core.entities import Report, ReportEntry
from tracker.core.exceptions import PermissionDenied
from tracker.core.session import Actor, Role


@dataclass(frozen=True)
class Capabilities:
    actor: Actor

    @classmethod
    def for_actor(cls, actor: Actor) -> "Capabilities":
        return cls(actor)

    def can_work_on(self, report: Report) -> bool:
        """Department users work only on their own department's reports."""
        return self.can_report() and report.department_id == self.actor.department_id

    def can_edit(self, report: Report, entry: ReportEntry) -> bool:
        """HODs edit any entry of their department; others only their own."""
        if not self.can_work_on(report):
            return False
        return self.actor.role is Role.HOD or entry.submitted_by == self.actor.id

    def can_delete(self, report: Report, entry: ReportEntry) -> bool:
        return self.can_edit(report, entry)

    def can_approve(self, report: Report) -> bool:
        return self.actor.role is Role.HOD and self.can_work_on(report)

    def can_submit(self, report: Report) -> bool:
        return self.actor.role is Role.HOD and self.can_work_on(report)

    def can_report(self) -> bool:
        return self.actor.role in (Role.HOD, Role.LECTURER) and bool(self.actor.department_id)

    def can_review(self) -> bool:
        return self.actor.role is Role.ADMIN

    def can_view_department(self, department_id: str) -> bool:
        return self.actor.role is Role.ADMIN or self.actor.department_id == department_id

    def require(self, action: str, allowed: bool, reason: str | None = None) -> None:
        """Raise PermissionDenied for ``action`` unless ``allowed``."""
        if not allowed:
            raise PermissionDenied(self.actor.id, action, reason)
