"""
Faculty Progress Tracker
Reports blueprint — the persistence API the sync client talks to.

Endpoints:
    GET  /api/v1/reports             full snapshot, newest period first
    GET  /api/v1/reports?test=true   health probe (database clock)
    POST /api/v1/reports             upsert one report, entries replaced

Service layer owns the transaction; this module only maps results and
exceptions to HTTP.
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

import tracker.services.report_persistence as persistence
from tracker.core.exceptions import ConflictError, ValidationError
from tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/v1")

PROBE_MESSAGE = "Cloud connection verified."


def probe_response():
    """Shared body of the health probe; 503 when the database does not answer."""
    try:
        now = persistence.probe_time()
    except SQLAlchemyError as exc:
        logger.error("Database probe failed: %s", exc)
        return api_error(E.UNAVAILABLE, "Database connection failed")
    return jsonify({"status": "ok", "message": PROBE_MESSAGE, "time": now}), 200


@reports_bp.route("/reports", methods=["GET"])
def list_reports():
    """Return all reports, or run the health probe when ``?test=true``."""
    if request.args.get("test", "").lower() == "true":
        return probe_response()
    try:
        reports = persistence.list_reports()
    except SQLAlchemyError:
        logger.exception("Failed to load report snapshot")
        return api_error(E.DATABASE, "Failed to load reports")
    return jsonify(reports), 200


@reports_bp.route("/reports", methods=["POST"])
def upsert_report():
    """Create or replace one report.

    Body: a serialised report with embedded ``entries``.
    Returns: {"success": true} (200).
    """
    if not request.is_json:
        return api_error(E.UNSUPPORTED_MEDIA_TYPE, "Content-Type must be application/json")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    if not data.get("id"):
        return api_error(E.VALIDATION_REQUIRED, "Report id is required",
                         details={"id": "required"})

    try:
        record = persistence.upsert_report(data)
    except ValidationError as exc:
        code = E.VALIDATION_REQUIRED if exc.code == "REQUIRED" else E.VALIDATION_INVALID
        return api_error(code, str(exc), details=exc.details)
    except ConflictError as exc:
        if exc.field == "revision":
            return api_error(
                E.CONFLICT_STATE,
                "A newer revision of this report is already stored",
                details={"revision": exc.value},
            )
        return api_error(
            E.CONFLICT_DUPLICATE,
            "Another report already exists for this department and period",
            details={"departmentPeriod": exc.value},
        )
    except SQLAlchemyError:
        logger.exception("Failed to save report %s", data.get("id"))
        return api_error(E.DATABASE, "Failed to save report")

    return jsonify({"success": True, "id": record.id, "revision": record.revision}), 200
