import os

# must be set before shopledger is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["OWNER_EMAIL"] = ""
os.environ["RESEND_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from shopledger.main import app
from shopledger.core.config import settings
from shopledger.db.base import Base
from shopledger.db.session import engine, make_engine, SessionLocal
from shopledger.schemas import RegisterIn
from shopledger.services import accounts, notify

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


def make_user(db, email="ada@example.com", name="Ada Obi"):
    return accounts.register(db, RegisterIn(full_name=name, email=email, password=PASSWORD,
                                            confirm_password=PASSWORD))


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def other_user(db):
    return make_user(db, email="bola@example.com", name="Bola Ade")


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_client(client, user):
    resp = client.post("/login", data={"email": user.email, "password": PASSWORD}, follow_redirects=False)
    assert resp.status_code == 302
    return client


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"id": "email_123"}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


@pytest.fixture
def resend(monkeypatch):
    """Capture outgoing emails; addresses in `resend.reject` get a 422 from the fake provider."""
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test_key")

    class Recorder:
        calls = []
        reject = set()

    def fake_post(url, headers=None, json=None, timeout=None):
        Recorder.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if json["to"][0] in Recorder.reject:
            return FakeResponse(422, {"message": "Invalid `to` field"})
        return FakeResponse()

    Recorder.calls = []
    Recorder.reject = set()
    monkeypatch.setattr(notify.requests, "post", fake_post)
    return Recorder


@pytest.fixture
def file_sessions(tmp_path):
    """Two independent sessions on a file database, as two request workers would have."""
    eng = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=eng)
    factory = sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)
    first, second = factory(), factory()
    yield first, second
    first.close()
    second.close()
    eng.dispose()
