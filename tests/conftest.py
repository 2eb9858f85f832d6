import threading
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from smartwork.core.clock import utcnow
from smartwork.core.database import Base, build_engine, get_db
from smartwork.core.security import hash_password
from smartwork.core.sessions import SessionRegistry
from smartwork.main import create_app
import smartwork.models.request  # noqa: F401
from smartwork.models.user import User
from smartwork.services.mailer import Mailer
from smartwork.services.notifications import Notifier

ADMIN_INBOX = "admin-inbox@example.com"
DEFAULT_PASSWORD = "secret-pass"


class RecordingMailer(Mailer):
    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self._lock = threading.Lock()

    def send(self, to, subject, body):
        with self._lock:
            self.sent.append({"to": to, "subject": subject, "body": body})
        return not self.fail

    def to(self, address):
        return [m for m in self.sent if m["to"] == address]


class InlineExecutor:
    """Runs notification jobs immediately so tests can assert on them."""

    def submit(self, fn, *args, **kwargs):
        fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


def temp_password_from(mail: dict) -> str:
    for line in mail["body"].splitlines():
        if line.startswith("Temporary password:"):
            return line.split(":", 1)[1].strip()
    raise AssertionError(f"no temporary password in {mail['body']!r}")


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'smartwork-test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def notifier(mailer):
    return Notifier(mailer, ADMIN_INBOX, InlineExecutor())


@pytest.fixture
def sessions():
    return SessionRegistry()


@pytest.fixture
def make_user(db):
    def _make(
        username,
        password=DEFAULT_PASSWORD,
        role="Employee",
        email="default",
        display_name=None,
        force_password_change=False,
        legacy=False,
        password_set_at="now",
    ):
        user = User(
            username=username,
            display_name=display_name,
            email=f"{username}@example.com" if email == "default" else email,
            role=role,
            theme="light",
            force_password_change=force_password_change,
        )
        if legacy:
            user.password = password
            user.password_set_at = None
        else:
            user.password_hash = hash_password(password)
            user.password_set_at = utcnow() if password_set_at == "now" else password_set_at

        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def app(session_factory, notifier, sessions):
    app = create_app(sessions=sessions, notifier=notifier, run_startup=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(client):
    def _login(username, password=DEFAULT_PASSWORD):
        resp = client.post("/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
def long_ago():
    return datetime(2000, 1, 1, 12, 0, 0)
