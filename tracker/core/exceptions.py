"""
Tracker-wide exception hierarchy.

Engines and services raise these; blueprints map them to HTTP status codes
once, and client callers decide whether to retry or abort. Every engine
operation validates before it mutates, so catching one of these never leaves
the report collection half-updated.

Usage:
    from tracker.core.exceptions import PermissionDenied, ValidationError

    raise PermissionDenied(actor.id, "submit_report")
    raise ValidationError("File is too large", code="ATTACHMENT_TOO_LARGE")
"""


class NotFoundError(Exception):
    """Raised when a report, entry or reference node does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Report", "ReportEntry").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Examples: attachment above the size cap, malformed period, an entry for
    an objective whose goal is not selected, a report push without an id.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured responses.
        code: Optional machine-readable reason (e.g. "ATTACHMENT_TOO_LARGE").
    """

    def __init__(self, message: str, details: dict | None = None, code: str | None = None) -> None:
        self.details = details or {}
        self.code = code
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would break a uniqueness rule or arrives stale.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field carrying the conflict ("period", "revision", ...).
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} conflicts with stored data")


class PermissionDenied(Exception):
    """Raised when the acting user lacks the capability for an action."""

    def __init__(self, actor_id: str | None, action: str, reason: str | None = None):
        msg = f"User {actor_id} does not have permission for '{action}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.actor_id = actor_id
        self.action = action
        self.reason = reason


class TransitionError(Exception):
    """Raised when a report lifecycle action is invalid for its current status."""

    def __init__(self, report_id: str, action: str, current: str, reason: str | None = None):
        msg = f"Cannot '{action}' report {report_id} (status={current})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.report_id = report_id
        self.action = action
        self.current_status = current

