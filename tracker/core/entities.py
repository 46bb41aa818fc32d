"""
Report and ReportEntry, the unit of work a department hands in each month.

These are plain dataclasses owned by the client-side engines. The server keeps
its own SQLAlchemy rows (tracker.models.report); both sides meet on the JSON
shape produced by ``to_dict()``, which keeps the camelCase keys the dashboard
front-end has always stored.

Lifecycle:
    DRAFT ──submit──▶ SUBMITTED ──accept──▶ ACCEPTED
      ▲                   │
      └── (editable) ◀────┴──request_revision──▶ REVISION_REQUESTED
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from tracker.core.exceptions import ValidationError

INLINE_EVIDENCE_PREFIX = "data:"

_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class ReportStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    ACCEPTED = "ACCEPTED"


class EntryStatus(str, Enum):
    NOT_STARTED = "Not started"
    IN_PROGRESS = "In progress"
    COMPLETED = "Completed"
    DELAYED = "Delayed"


# Department-side edits are only allowed in these states
EDITABLE_STATUSES = frozenset({ReportStatus.DRAFT, ReportStatus.REVISION_REQUESTED})

# Counted as "handed in" by the admin dashboard
SUBMITTED_OR_LATER = frozenset({ReportStatus.SUBMITTED, ReportStatus.ACCEPTED})


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_period(period: str) -> str:
    """Return ``period`` if it is a ``YYYY-MM`` string, else raise ValidationError."""
    value = (period or "").strip()
    if not _PERIOD_RE.match(value):
        raise ValidationError(
            f"Invalid period '{period}'. Expected YYYY-MM.",
            details={"period": period},
        )
    return value


def is_inline_evidence(url: str | None) -> bool:
    """True when the evidence is an inlined attachment rather than a link."""
    return bool(url) and url.startswith(INLINE_EVIDENCE_PREFIX)


def _parse_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        valid = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {label} '{value}'. Must be one of: {valid}",
            details={label: value},
        ) from exc


@dataclass
class ReportEntry:
    """One department's progress claim against a single objective."""

    id: str
    report_id: str
    objective_id: str
    status: EntryStatus = EntryStatus.IN_PROGRESS
    narrative: str = ""
    metrics: str | None = None
    challenges: str | None = None
    support_needed: str | None = None
    evidence_url: str | None = None
    created_at: str = field(default_factory=utcnow_iso)
    submitted_by: str | None = None
    submitted_by_name: str | None = None
    is_approved_by_hod: bool = False

    @property
    def has_inline_evidence(self) -> bool:
        return is_inline_evidence(self.evidence_url)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reportId": self.report_id,
            "objectiveId": self.objective_id,
            "status": self.status.value,
            "narrative": self.narrative,
            "metrics": self.metrics,
            "challenges": self.challenges,
            "supportNeeded": self.support_needed,
            "evidenceUrl": self.evidence_url,
            "createdAt": self.created_at,
            "submittedBy": self.submitted_by,
            "submittedByName": self.submitted_by_name,
            "isApprovedByHOD": self.is_approved_by_hod,
        }

    @classmethod
    def from_dict(cls, data: dict, report_id: str | None = None) -> "ReportEntry":
        if not data.get("id"):
            raise ValidationError("Report entry id is required", details={"id": None})
        return cls(
            id=data["id"],
            report_id=data.get("reportId") or report_id,
            objective_id=data.get("objectiveId"),
            status=_parse_enum(EntryStatus, data.get("status") or EntryStatus.IN_PROGRESS.value,
                               "status"),
            narrative=data.get("narrative") or "",
            metrics=data.get("metrics"),
            challenges=data.get("challenges"),
            support_needed=data.get("supportNeeded"),
            evidence_url=data.get("evidenceUrl"),
            created_at=data.get("createdAt") or utcnow_iso(),
            submitted_by=data.get("submittedBy"),
            submitted_by_name=data.get("submittedByName"),
            is_approved_by_hod=bool(data.get("isApprovedByHOD", False)),
        )


@dataclass
class Report:
    """A department's report for one calendar period.

    Business rules (enforced by the engines, not here):
    - one report per (department_id, period)
    - every entry's objective belongs to a goal in ``selected_goals``
    - ``revision`` grows by one on every stored change; the server refuses
      pushes that carry a lower revision than it already holds
    """

    id: str
    department_id: str
    period: str
    created_by: str | None = None
    status: ReportStatus = ReportStatus.DRAFT
    submitted_at: str | None = None
    selected_goals: list[str] = field(default_factory=list)
    entries: list[ReportEntry] = field(default_factory=list)
    revision: int = 0

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    @property
    def unapproved_entries(self) -> list[ReportEntry]:
        return [e for e in self.entries if not e.is_approved_by_hod]

    def entry(self, entry_id: str) -> ReportEntry | None:
        return next((e for e in self.entries if e.id == entry_id), None)

    def content_key(self) -> dict:
        """Serialized content minus the revision counter, for change detection."""
        data = self.to_dict()
        data.pop("revision", None)
        return data

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "departmentId": self.department_id,
            "period": self.period,
            "status": self.status.value,
            "createdBy": self.created_by,
            "submittedAt": self.submitted_at,
            "selectedGoals": list(self.selected_goals),
            "entries": [e.to_dict() for e in self.entries],
            "revision": self.revision,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Report":
        report_id = data.get("id")
        if not report_id:
            raise ValidationError("Report id is required", details={"id": None})
        selected: list[str] = []
        for goal_id in data.get("selectedGoals") or []:
            if goal_id not in selected:
                selected.append(goal_id)
        return cls(
            id=report_id,
            department_id=data.get("departmentId"),
            period=data.get("period"),
            created_by=data.get("createdBy"),
            status=_parse_enum(ReportStatus, data.get("status") or ReportStatus.DRAFT.value,
                               "status"),
            submitted_at=data.get("submittedAt"),
            selected_goals=selected,
            entries=[ReportEntry.from_dict(e, report_id) for e in data.get("entries") or []],
            revision=int(data.get("revision") or 0),
        )
