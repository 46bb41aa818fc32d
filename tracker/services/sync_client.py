"""
Sync Client: mirrors the local Report Store to the remote report API.

Two cooperating layers:
  - ReportStore: authoritative, local, written synchronously
  - remote API:  eventually consistent mirror, written in the background

Start-up:
    client.start()  # pull snapshot; online → replace store, offline → keep cache

On every local change the client works out which reports differ from the
last state the server is known to hold and pushes each of them (one upsert
per report; normally exactly one). Pushes run on a single-worker executor,
so one client never has two pushes for the same report in flight out of
order. A failed push leaves local data alone and flips the status to ERROR;
the next change pushes the same report again.

A push the server refuses as stale (it holds a newer revision) marks the
report superseded: status turns ERROR and the report is not pushed again,
so the newer remote copy is never overwritten. The next successful
``start()`` adopts the server copy and clears the conflict.

Status is a tri-state for callers (synced / syncing / offline-or-error),
with OFFLINE and ERROR kept apart so a UI can say which one it is.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum

from tracker.core.entities import Report
from tracker.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

PUSH_FAILED_MESSAGE = "Cloud save failed. Changes kept locally."
CONFLICT_MESSAGE = "Report changed elsewhere. Reload to get the latest copy."


class SyncStatus(str, Enum):
    SYNCED = "synced"
    SYNCING = "syncing"
    OFFLINE = "offline"
    ERROR = "error"


class SyncClient:
    """Background push / start-up pull between a ReportStore and a ReportGateway.

    Args:
        store: ReportStore to mirror.
        gateway: ReportGateway (or any object with fetch_reports / push_report / probe).
        executor: Optional concurrent.futures executor for pushes. Defaults to a
            single-worker thread pool.
    """

    def __init__(self, store, gateway, *, executor=None) -> None:
        self.store = store
        self.gateway = gateway
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="report-sync",
        )
        self._lock = threading.Lock()
        self._known_remote: dict[str, dict] = {}
        self._pending: set[Future] = set()
        self._offline = True
        self._last_error: str | None = None
        self.superseded: list[str] = []
        store.subscribe(self._on_store_change)

    # ── Status ───────────────────────────────────────────────────────────

    @property
    def status(self) -> SyncStatus:
        with self._lock:
            if self._pending:
                return SyncStatus.SYNCING
            if self._offline:
                return SyncStatus.OFFLINE
            if self._last_error or self.superseded:
                return SyncStatus.ERROR
            return SyncStatus.SYNCED

    @property
    def is_offline(self) -> bool:
        return self._offline

    @property
    def last_error(self) -> str | None:
        if self._last_error is None and self.superseded:
            return CONFLICT_MESSAGE
        return self._last_error

    # ── Pull ─────────────────────────────────────────────────────────────

    def start(self) -> SyncStatus:
        """Pull the remote snapshot once; replace the store if it succeeds.

        An empty remote snapshot is a success but does not wipe local data.
        """
        result = self.gateway.fetch_reports()
        if not result.ok:
            with self._lock:
                self._offline = True
            logger.warning(
                "Cloud sync unavailable (%s). Running in local mode.", result.error,
            )
            return self.status

        try:
            reports = [Report.from_dict(item) for item in result.data]
        except (ValidationError, TypeError, ValueError) as exc:
            with self._lock:
                self._offline = True
            logger.warning("Remote snapshot unreadable (%s). Running in local mode.", exc)
            return self.status

        with self._lock:
            self._offline = False
            self._last_error = None
            self.superseded = []
            self._known_remote = {r.id: r.content_key() for r in reports}

        if reports:
            self.store.replace_from_remote(reports)
        logger.info("Cloud snapshot pulled: %d reports", len(reports))
        return self.status

    def reconnect(self) -> SyncStatus:
        """Leave local mode if the API answers, then push local changes."""
        probe = self.gateway.probe()
        if not probe.ok:
            logger.info("Reconnect failed: %s", probe.error)
            return self.status
        with self._lock:
            self._offline = False
        self.push_changes()
        return self.status

    # ── Push ─────────────────────────────────────────────────────────────

    def changed_reports(self, current: dict[str, dict] | None = None) -> list[dict]:
        """Serialized reports whose content differs from the last known remote state.

        Superseded reports are left out until the next pull.
        """
        current = current if current is not None else self.store.snapshot()
        changed = []
        for report_id, data in current.items():
            if report_id in self.superseded:
                continue
            content = dict(data)
            content.pop("revision", None)
            if self._known_remote.get(report_id) != content:
                changed.append(data)
        return changed

    def push_changes(self, current: dict[str, dict] | None = None) -> list[Future]:
        """Queue an upsert for every changed report. No-op while offline."""
        if self._offline:
            return []
        futures = []
        for payload in self.changed_reports(current):
            futures.append(self._submit_push(payload))
        return futures

    def flush(self, timeout: float | None = None) -> None:
        """Block until queued pushes have finished."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        self._executor.shutdown(wait=True)

    def _on_store_change(self, previous, current, remote: bool = False) -> None:
        if remote:
            with self._lock:
                self._known_remote = {
                    rid: {k: v for k, v in data.items() if k != "revision"}
                    for rid, data in current.items()
                }
            return
        self.push_changes(current)

    def _submit_push(self, payload: dict) -> Future:
        future = self._executor.submit(self._push, payload)
        with self._lock:
            if not future.done():
                self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _push(self, payload: dict) -> bool:
        report_id = payload.get("id")
        result = self.gateway.push_report(payload)
        content = {k: v for k, v in payload.items() if k != "revision"}

        if result.ok:
            with self._lock:
                self._known_remote[report_id] = content
                self._last_error = None
            logger.debug("Report %s pushed (%dms)", report_id, result.duration_ms)
            return True

        if result.is_stale:
            with self._lock:
                if report_id not in self.superseded:
                    self.superseded.append(report_id)
            logger.warning(
                "Push of report %s superseded: server holds a newer revision than %s",
                report_id, payload.get("revision"),
                extra={"event_type": "sync_push_superseded", "report_id": report_id},
            )
            return False

        with self._lock:
            self._last_error = PUSH_FAILED_MESSAGE
        logger.warning(
            "Cloud save failed for report %s: %s",
            report_id, result.error,
            extra={"event_type": "sync_push_failed"},
        )
        return False
