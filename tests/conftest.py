from typing import List, Optional, Tuple
import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from eventauth.cache.store import MemoryStore
from eventauth.config.admin_config import AdminSettings
from eventauth.config.settings import Settings
from eventauth.container import build_container
from eventauth.events.models import Event
from eventauth.events.repository import FileEventRepository
from eventauth.main import create_app
from eventauth.notifications.email import DeliveryResult, EmailTransport

url_prefix = "/api/v1"

ADMIN_SECRET = "test-admin-secret"
EVENT_ID = "EVENT001"
OTHER_EVENT_ID = "EVENT002"
UNCONFIGURED_EVENT_ID = "NOPIN001"
EVENT_PIN = "482913"
EVENT_ADMIN = "organiser@example.com"


class FakeClock:
    """Wall clock stand-in shared by the store and the services."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingTransport(EmailTransport):
    sends_mail = False

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail_with: Optional[str] = None

    async def send_otp(self, to_email: str, code: str, expires_in_seconds: int) -> DeliveryResult:
        if self.fail_with:
            return DeliveryResult(success=False, error=self.fail_with)
        self.sent.append((to_email, code))
        return DeliveryResult(success=True)

    def last_code(self, email: str) -> str:
        return [c for e, c in self.sent if e == email][-1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(prefix="test", clock=clock)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def settings():
    return Settings(
        JWT_SECRET="test-jwt-secret",
        STORE_BACKEND="memory",
        SMTP_ENABLED="false",
        FINGERPRINT_SECRET="test-fingerprint-secret",
    )


@pytest.fixture
def admin():
    return AdminSettings(ENV="dev", ENABLE_ADMIN=True, ADMIN_SECRET=ADMIN_SECRET)


@pytest.fixture
async def events(tmp_path):
    repo = FileEventRepository(tmp_path / "events")
    await repo.save_event(Event(event_id=EVENT_ID, name="Launch night", pin=EVENT_PIN,
                                administrators=[EVENT_ADMIN]))
    await repo.save_event(Event(event_id=OTHER_EVENT_ID, name="Afterparty", pin="739105",
                                administrators=["someone@example.com"]))
    await repo.save_event(Event(event_id=UNCONFIGURED_EVENT_ID, name="Draft", pin=None,
                                administrators=[EVENT_ADMIN]))
    return repo


@pytest.fixture
def container(settings, admin, store, transport, events, clock):
    return build_container(settings, admin, store=store, transport=transport, events=events, clock=clock)


@pytest.fixture
async def ac_client(container, settings, admin):
    app = create_app(container=container, settings=settings, admin=admin)
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
