import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from muddiest import create_app
from muddiest.extensions import db
from muddiest.models import Course
from muddiest.services import sessions as svc_sessions
from muddiest.services import tokens
from muddiest.utils import helpers

@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        APP_BASE_URL="http://example.test",
        WTF_CSRF_ENABLED=False,
        APP_ENV="test",
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture()
def ctx(app):
    with app.app_context():
        yield

@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()

@pytest.fixture()
def clock(monkeypatch):
    """Controllable naive-UTC clock patched into helpers.utcnow."""
    class _Clock:
        def __init__(self):
            self.now = datetime(2025, 3, 4, 15, 0, 0)
        def advance(self, **kw):
            self.now = self.now + timedelta(**kw)
            return self.now
    c = _Clock()
    monkeypatch.setattr(helpers, "utcnow", lambda: c.now)
    return c

@pytest.fixture()
def course(app):
    with app.app_context():
        c = Course(name="Programming Fundamentals II", code="COSC 1337")
        db.session.add(c)
        db.session.commit()
        return SimpleNamespace(id=c.id, name=c.name, code=c.code)

@pytest.fixture()
def live_session(app, course, clock):
    with app.app_context():
        cs, _ = svc_sessions.create_session(db.session, course.id)
        db.session.commit()
        return SimpleNamespace(
            id=cs.id, course_id=cs.course_id, access_token=cs.access_token, expires_at=cs.expires_at
        )

@pytest.fixture()
def owner_headers(app):
    with app.app_context():
        return {"X-Owner-Token": tokens.generate(tokens.KIND_OWNER, "tests")}
