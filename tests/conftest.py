"""
Shared pytest fixtures for the Faculty Progress Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - cache / store: in-memory LocalCache and ReportStore
    - hod / lecturer / admin: Actors; *_session: logged-in SessionContexts
    - ids / clock: deterministic id factory and timestamp source
    - InlineExecutor: runs sync pushes on the calling thread
"""

import itertools
from concurrent.futures import Executor, Future
from urllib.parse import urlsplit

import pytest
import requests

from tracker import create_app
from tracker.core.session import Actor, Role, SessionContext
from tracker.models import db as _db
from tracker.services.local_cache import LocalCache
from tracker.services.report_store import ReportStore

FIXED_NOW = "2025-01-15T10:00:00+00:00"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Client-side fixtures ─────────────────────────────────────────────────


class InlineExecutor(Executor):
    """Executor that runs each task immediately on the submitting thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # handed back through the future
            future.set_exception(exc)
        return future


class FlaskClientSession:
    """requests.Session stand-in that routes calls into a Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def request(self, method, url, headers=None, timeout=None, json=None, params=None):
        self.calls.append((method, url, json, params))
        resp = self.test_client.open(
            urlsplit(url).path, method=method, headers=headers,
            json=json, query_string=params,
        )
        return to_requests_response(resp.status_code, resp.data)


def to_requests_response(status_code, body: bytes):
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    response.encoding = "utf-8"
    return response


@pytest.fixture()
def cache():
    return LocalCache()


@pytest.fixture()
def store(cache):
    return ReportStore(cache)


@pytest.fixture()
def ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def hod():
    return Actor(id="u-hod", name="Dr. Amina Bello", role=Role.HOD,
                 email="hod@faculty.test", department_id="dept-1")


@pytest.fixture()
def lecturer():
    return Actor(id="u-lec", name="Mr. Tunde Ade", role=Role.LECTURER,
                 email="lec@faculty.test", department_id="dept-1")


@pytest.fixture()
def other_lecturer():
    return Actor(id="u-lec2", name="Mrs. Ngozi Obi", role=Role.LECTURER,
                 department_id="dept-1")


@pytest.fixture()
def admin():
    return Actor(id="u-admin", name="Dean's Office", role=Role.ADMIN)


def _logged_in(actor):
    ctx = SessionContext()
    ctx.login(actor)
    return ctx


@pytest.fixture()
def hod_session(hod):
    return _logged_in(hod)


@pytest.fixture()
def lecturer_session(lecturer):
    return _logged_in(lecturer)


@pytest.fixture()
def admin_session(admin):
    return _logged_in(admin)


@pytest.fixture()
def inline_executor():
    return InlineExecutor()


@pytest.fixture()
def flask_session(client):
    """requests-compatible session bound to the Flask test client."""
    return FlaskClientSession(client)
