"""Report persistence service — server side of the report API.

Transaction policy: ``upsert_report`` owns its transaction (commit on success,
rollback on any failure). Read helpers never write.

Operations:
- list_reports: full snapshot, newest period first
- upsert_report: create or replace one report; entries are deleted and
  re-inserted so the stored list always equals the pushed list
- probe_time: database clock, used by the health probe
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tracker.core.entities import Report
from tracker.core.exceptions import ConflictError, ValidationError
from tracker.models import db
from tracker.models.report import ReportEntryRecord, ReportRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "departmentId", "period")


def list_reports():
    """Return every report as a camelCase dict, ordered by period descending."""
    rows = ReportRecord.query.order_by(ReportRecord.period.desc(), ReportRecord.id).all()
    return [r.to_dict() for r in rows]


def _parse_payload(data):
    missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
            code="REQUIRED",
        )
    # Status values and entry shapes are checked by the shared entity parser
    return Report.from_dict(data)


def _entry_rows(report):
    return [
        ReportEntryRecord(
            id=entry.id,
            report_id=report.id,
            position=position,
            objective_id=entry.objective_id,
            status=entry.status.value,
            narrative=entry.narrative,
            metrics=entry.metrics,
            challenges=entry.challenges,
            support_needed=entry.support_needed,
            evidence_url=entry.evidence_url,
            created_at=entry.created_at,
            submitted_by=entry.submitted_by,
            submitted_by_name=entry.submitted_by_name,
            is_approved_by_hod=entry.is_approved_by_hod,
        )
        for position, entry in enumerate(report.entries)
    ]


def upsert_report(data):
    """Create or replace the report in ``data``.

    Returns:
        The stored ReportRecord.

    Raises:
        ValidationError: missing id/department/period, unknown status.
        ConflictError: field="revision" when the pushed revision is older than
            the stored one; field="period" when another report already holds
            the same (department, period).
        SQLAlchemyError: persistence fault (transaction rolled back).
    """
    report = _parse_payload(data)

    try:
        clash = ReportRecord.query.filter(
            ReportRecord.department_id == report.department_id,
            ReportRecord.period == report.period,
            ReportRecord.id != report.id,
        ).first()
        if clash is not None:
            raise ConflictError("Report", "period", f"{report.department_id}/{report.period}")

        record = db.session.get(ReportRecord, report.id)
        if record is not None and report.revision < (record.revision or 0):
            raise ConflictError("Report", "revision", str(report.revision))

        if record is None:
            record = ReportRecord(id=report.id)
            db.session.add(record)
            created = True
        else:
            created = False

        record.department_id = report.department_id
        record.period = report.period
        record.status = report.status.value
        record.created_by = report.created_by
        record.submitted_at = report.submitted_at
        record.selected_goals = list(report.selected_goals)
        record.revision = report.revision

        # Delete-then-insert: flush the removal before adding replacements
        record.entries = []
        db.session.flush()
        record.entries = _entry_rows(report)

        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Report %s rejected by a constraint: %s", report.id, exc.orig)
        raise ConflictError("Report", "period", f"{report.department_id}/{report.period}") from exc
    except (ConflictError, SQLAlchemyError):
        db.session.rollback()
        raise

    logger.info(
        "Report %s %s (%s/%s status=%s rev=%d entries=%d)",
        report.id, "created" if created else "replaced",
        report.department_id, report.period, report.status.value,
        report.revision, len(report.entries),
        extra={"event_type": "report_upserted", "report_id": report.id,
               "department_id": report.department_id, "period": report.period},
    )
    return record


def probe_time():
    """Return the database server time as an ISO string."""
    value = db.session.execute(db.text("SELECT CURRENT_TIMESTAMP")).scalar()
    return value.isoformat() if hasattr(value, "isoformat") else str(value)
