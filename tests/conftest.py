import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from shopauth.auth.passwords import make_hasher
from shopauth.auth.users import UserStore
from shopauth.config import Settings
from shopauth.errors import NotifierUnavailable
from shopauth.services.auth_service import AuthService
from shopauth.services.notifier import Notifier


class FrozenClock:
    """Callable clock the tests can move forward."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(Notifier):
    def __init__(self, settings: Settings, *, fail: bool = False):
        super().__init__(settings)
        self.fail = fail
        self.sent = []

    def send(self, message) -> None:
        if self.fail:
            raise NotifierUnavailable("smtp down")
        self.sent.append(message)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    # cheap argon2 parameters keep the suite fast
    return Settings(
        secret_key="test-secret",
        users_path=tmp_path / "data" / "users.yml",
        base_url="https://shop.example",
        argon2_time_cost=1,
        argon2_memory_cost=8,
        argon2_parallelism=1,
    )


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store(settings: Settings) -> UserStore:
    return UserStore(settings.users_path)


@pytest.fixture()
def notifier(settings: Settings) -> RecordingNotifier:
    return RecordingNotifier(settings)


@pytest.fixture()
def service(settings, store, notifier, clock) -> AuthService:
    return AuthService(
        settings=settings,
        store=store,
        notifier=notifier,
        hasher=make_hasher(settings),
        clock=clock,
    )


class FakeSession:
    """Stands in for SessionGateway outside a request."""

    def __init__(self):
        self.user = None
        self.destroyed = 0

    def current(self):
        return self.user

    def establish(self, user) -> None:
        self.user = user

    def destroy(self) -> None:
        self.user = None
        self.destroyed += 1


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()
