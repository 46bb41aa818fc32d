"""
Faculty Progress Tracker
Report persistence models.

Models:
    - ReportRecord: one department's report for one period
    - ReportEntryRecord: one progress entry, owned by its report

Rows are serialised with the same camelCase keys the client stores locally,
so the HTTP API can hand them back unchanged.
"""

from datetime import datetime, timezone

from tracker.models import db


class ReportRecord(db.Model):
    """
    Department report for one calendar period (``YYYY-MM``).

    Entries are replaced wholesale on every upsert.
    """

    __tablename__ = "reports"
    __table_args__ = (
        db.UniqueConstraint("department_id", "period", name="uq_reports_department_period"),
    )

    id = db.Column(db.String(64), primary_key=True)
    department_id = db.Column(db.String(64), nullable=False, index=True)
    period = db.Column(db.String(7), nullable=False, index=True, comment="YYYY-MM")
    status = db.Column(db.String(30), nullable=False, default="DRAFT")
    created_by = db.Column(db.String(150), nullable=True)
    submitted_at = db.Column(db.String(40), nullable=True, comment="ISO timestamp set by the client")
    selected_goals = db.Column(db.JSON, nullable=False, default=list)
    revision = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    entries = db.relationship(
        "ReportEntryRecord",
        backref="report",
        cascade="all, delete-orphan",
        order_by="ReportEntryRecord.position",
        lazy="selectin",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "departmentId": self.department_id,
            "period": self.period,
            "status": self.status,
            "createdBy": self.created_by,
            "submittedAt": self.submitted_at,
            "selectedGoals": list(self.selected_goals or []),
            "entries": [e.to_dict() for e in self.entries],
            "revision": self.revision or 0,
        }

    def __repr__(self):
        return f"<ReportRecord {self.id}: {self.department_id} {self.period} {self.status}>"


class ReportEntryRecord(db.Model):
    """One progress claim against one objective."""

    __tablename__ = "report_entries"

    pk = db.Column(db.Integer, primary_key=True)
    id = db.Column(db.String(64), nullable=False, index=True)
    report_id = db.Column(
        db.String(64), db.ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)
    objective_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(30), nullable=False, default="In progress")
    narrative = db.Column(db.Text, default="")
    metrics = db.Column(db.Text, nullable=True)
    challenges = db.Column(db.Text, nullable=True)
    support_needed = db.Column(db.Text, nullable=True)
    evidence_url = db.Column(db.Text, nullable=True, comment="Link or inlined data: URL")
    created_at = db.Column(db.String(40), nullable=True)
    submitted_by = db.Column(db.String(150), nullable=True)
    submitted_by_name = db.Column(db.String(200), nullable=True)
    is_approved_by_hod = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            "id": self.id,
            "reportId": self.report_id,
            "objectiveId": self.objective_id,
            "status": self.status,
            "narrative": self.narrative or "",
            "metrics": self.metrics,
            "challenges": self.challenges,
            "supportNeeded": self.support_needed,
            "evidenceUrl": self.evidence_url,
            "createdAt": self.created_at,
            "submittedBy": self.submitted_by,
            "submittedByName": self.submitted_by_name,
            "isApprovedByHOD": bool(self.is_approved_by_hod),
        }

    def __repr__(self):
        return f"<ReportEntryRecord {self.id} ({self.objective_id})>"
