"""
Report Store — the authoritative in-memory report collection for a session.

Durability first, sync second: every bulk write is persisted to the local
cache before listeners (the sync client) hear about it, so a failed network
push never loses work.

Readers always get copies; the only way to change the collection is
``set_reports`` (local edits) or ``replace_from_remote`` (cloud snapshot).
"""

from __future__ import annotations

import logging

from tracker.core.entities import Report
from tracker.core.exceptions import ConflictError, ValidationError

logger = logging.getLogger(__name__)

REPORTS_CACHE_KEY = "fmsc_reports_data"


class ReportStore:
    """Mapping of report id → Report backed by a LocalCache.

    Args:
        cache: LocalCache used for durability.
    """

    def __init__(self, cache) -> None:
        self._cache = cache
        self._snapshot: dict[str, dict] = {}
        self._order: list[str] = []
        self._listeners: list = []

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self) -> int:
        """Load the collection from the local cache. Returns the report count."""
        raw = self._cache.get(REPORTS_CACHE_KEY, default=[]) or []
        reports = []
        for item in raw:
            try:
                reports.append(Report.from_dict(item))
            except (ValidationError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable cached report: %s", exc)
        self._install(reports)
        logger.info("Report store loaded %d reports from local cache", len(reports))
        return len(reports)

    # ── Reads ────────────────────────────────────────────────────────────

    def all(self) -> list[Report]:
        return [Report.from_dict(self._snapshot[rid]) for rid in self._order]

    def get(self, report_id: str) -> Report | None:
        data = self._snapshot.get(report_id)
        return Report.from_dict(data) if data is not None else None

    def find(self, department_id: str, period: str) -> Report | None:
        for rid in self._order:
            data = self._snapshot[rid]
            if data["departmentId"] == department_id and data["period"] == period:
                return Report.from_dict(data)
        return None

    def snapshot(self) -> dict[str, dict]:
        """Serialized view keyed by report id (copies)."""
        return {rid: Report.from_dict(d).to_dict() for rid, d in self._snapshot.items()}

    def __len__(self) -> int:
        return len(self._order)

    # ── Writes ───────────────────────────────────────────────────────────

    def subscribe(self, listener) -> None:
        """Register ``listener(previous, current, remote=False)``; snapshots are id → dict."""
        self._listeners.append(listener)

    def set_reports(self, reports: list[Report]) -> list[Report]:
        """Replace the whole collection with ``reports`` (bulk-set).

        Reports whose content changed get their revision bumped past the
        stored one. The cache is written before listeners run.

        Raises:
            ConflictError: two reports share (department_id, period).
        """
        _check_unique_periods(reports)
        previous = self._snapshot
        for report in reports:
            before = previous.get(report.id)
            if before is None:
                continue
            old = Report.from_dict(before)
            if old.content_key() != report.content_key():
                report.revision = max(report.revision, old.revision) + 1
            else:
                report.revision = old.revision

        self._install(reports)
        self._persist()
        self._notify(previous)
        return self.all()

    def replace_from_remote(self, reports: list[Report]) -> None:
        """Adopt a remote snapshot verbatim (revisions included)."""
        _check_unique_periods(reports)
        previous = self._snapshot
        self._install(reports)
        self._persist()
        logger.info("Report store replaced from remote snapshot (%d reports)", len(reports))
        self._notify(previous, remote=True)

    # ── Internal ─────────────────────────────────────────────────────────

    def _install(self, reports: list[Report]) -> None:
        self._snapshot = {r.id: r.to_dict() for r in reports}
        self._order = [r.id for r in reports]

    def _persist(self) -> None:
        self._cache.set(REPORTS_CACHE_KEY, [self._snapshot[rid] for rid in self._order])

    def _notify(self, previous: dict, remote: bool = False) -> None:
        current = self.snapshot()
        for listener in list(self._listeners):
            listener(previous, current, remote=remote)


def _check_unique_periods(reports: list[Report]) -> None:
    seen: dict[tuple, str] = {}
    ids: set[str] = set()
    for report in reports:
        if report.id in ids:
            raise ConflictError("Report", "id", report.id)
        ids.add(report.id)
        key = (report.department_id, report.period)
        other = seen.get(key)
        if other is not None and other != report.id:
            raise ConflictError("Report", "period", f"{report.department_id}/{report.period}")
        seen[key] = report.id
