from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Keep the booknet package importable when running the tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booknet.core import config as core_config  # noqa: E402
from booknet.core import rate_limiter  # noqa: E402
from booknet.core.security import hash_password  # noqa: E402
from booknet.db import create_tables  # noqa: E402
from booknet.db import models  # noqa: E402
from booknet.db import session as db_session  # noqa: E402
from booknet.repositories.sql_repository import SQLRepository  # noqa: E402
import booknet.services.auth_service as auth_service  # noqa: E402

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Temporary SQLite database with the default roles; settings/engine caches are reset."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("PHOTOS_OUTPUT_PATH", str(tmp_path / "uploads"))
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("ACTIVATION_URL", "http://front.test/activate-account")
    monkeypatch.setenv("RESET_URL", "http://front.test/reset-password")
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    rate_limiter.reset_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    create_tables.create_all()

    yield tmp_path

    try:
        models.Base.metadata.drop_all(bind=engine)
    except Exception:
        pass
    try:
        engine.dispose()
    except Exception:
        pass
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def outbox(monkeypatch):
    """Capture every email the auth service sends."""
    sent: list[dict] = []

    def fake_send(to_email, username, template, action_url, code, subject):
        sent.append(
            {
                "to": to_email,
                "username": username,
                "template": template,
                "action_url": action_url,
                "code": code,
                "subject": subject,
            }
        )
        return True

    monkeypatch.setattr(auth_service, "send_email", fake_send)
    return sent


@pytest.fixture()
def repo(db_env):
    return SQLRepository()


@pytest.fixture()
def make_user(repo):
    def _make(email="ada@example.com", password="correct-horse", *, enabled=True, locked=False):
        return repo.create_user(
            firstname="Ada",
            lastname="Lovelace",
            email=email,
            password_hash=hash_password(password),
            enabled=enabled,
            account_locked=locked,
        )

    return _make
