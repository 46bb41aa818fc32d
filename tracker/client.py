"""
Client wiring: one object holding a session's cache, store and sync client.

Usage:
    client = TrackerClient.from_settings(ClientSettings.from_env())
    client.start()                       # load cache, pull cloud snapshot
    client.session.login(actor)
    wf = client.workflow()
    ...
    client.close()
"""

from __future__ import annotations

import logging

from tracker.config import ClientSettings
from tracker.core.catalog import DEFAULT_CATALOG
from tracker.core.session import SessionContext
from tracker.integrations.report_gateway import ReportGateway
from tracker.services.admin_review import AdminReview
from tracker.services.local_cache import LocalCache
from tracker.services.report_archive import ReportArchive
from tracker.services.report_store import ReportStore
from tracker.services.report_workflow import ReportWorkflow
from tracker.services.sync_client import SyncClient

logger = logging.getLogger(__name__)


class TrackerClient:
    def __init__(self, cache, gateway, settings=None, catalog=DEFAULT_CATALOG, executor=None):
        self.settings = settings or ClientSettings()
        self.catalog = catalog
        self.cache = cache
        self.gateway = gateway
        self.session = SessionContext.restore(cache)
        self.store = ReportStore(cache)
        self.sync = SyncClient(self.store, gateway, executor=executor)

    @classmethod
    def from_settings(cls, settings: ClientSettings, **kwargs) -> "TrackerClient":
        cache = LocalCache.from_path(settings.cache_path)
        gateway = ReportGateway(settings.api_base, timeout=settings.http_timeout)
        return cls(cache, gateway, settings=settings, **kwargs)

    def start(self):
        """Load the local cache, then try the cloud snapshot."""
        self.store.load()
        status = self.sync.start()
        logger.info("Tracker client started: %d reports, sync=%s", len(self.store), status.value)
        return status

    def workflow(self) -> ReportWorkflow:
        return ReportWorkflow(
            self.session, self.store, self.catalog,
            max_attachment_bytes=self.settings.max_attachment_bytes,
        )

    def admin(self) -> AdminReview:
        return AdminReview(self.session, self.store, self.catalog, gateway=self.gateway)

    def archive(self) -> ReportArchive:
        return ReportArchive(self.session, self.store, self.catalog)

    def close(self) -> None:
        self.sync.close()
