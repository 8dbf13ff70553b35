"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from civic_requests.core.config import Settings
from civic_requests.core.enums import UserRole
from civic_requests.core.security import Principal
from civic_requests.repositories.memory import (
    InMemoryAuditRepository,
    InMemoryServiceRequestRepository,
    InMemoryUserRepository,
)
from civic_requests.services.audit_service import AuditService
from civic_requests.services.notifications import NotificationHub, Notifier
from civic_requests.services.requests import RequestService

CITIZEN_ID = "64b7c2c9f1c2a8b123456701"
OTHER_CITIZEN_ID = "64b7c2c9f1c2a8b123456702"
STAFF_ID = "64b7c2c9f1c2a8b123456703"
ADMIN_ID = "64b7c2c9f1c2a8b123456704"
LEGACY_ADMIN_ID = "64b7c2c9f1c2a8b123456705"


def make_location(lon: float = 35.50, lat: float = 33.89, street: str = "12 Main St") -> dict:
    return {
        "coordinates": [lon, lat],
        "address": {
            "street": street,
            "city": "Springfield",
            "state": "IL",
            "zipCode": "62701",
        },
    }


class StepClock:
    """Deterministic clock: every call is one second after the previous."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def citizen() -> Principal:
    return Principal(id=CITIZEN_ID, role=UserRole.citizen, email="u1@example.org")


@pytest.fixture
def other_citizen() -> Principal:
    return Principal(id=OTHER_CITIZEN_ID, role=UserRole.citizen, email="u2@example.org")


@pytest.fixture
def staff() -> Principal:
    return Principal(id=STAFF_ID, role=UserRole.staff, email="s1@city.gov")


@pytest.fixture
def admin() -> Principal:
    return Principal(id=ADMIN_ID, role=UserRole.admin, email="root@city.gov")


@pytest.fixture
def legacy_admin() -> Principal:
    return Principal(id=LEGACY_ADMIN_ID, role=UserRole.citizen, email="admin@example.com")


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def repo() -> InMemoryServiceRequestRepository:
    return InMemoryServiceRequestRepository()


@pytest.fixture
def audit_repo() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub(queue_size=10)


@pytest.fixture
def notifier(hub) -> Notifier:
    return Notifier(hub)


@pytest.fixture
def service(repo, audit_repo, notifier, clock) -> RequestService:
    return RequestService(repo, AuditService(audit_repo), notifier, clock=clock)


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    users = InMemoryUserRepository()
    users.add("u1@example.org", "citizen", user_id=CITIZEN_ID)
    users.add("u2@example.org", "citizen", user_id=OTHER_CITIZEN_ID)
    users.add("s1@city.gov", "staff", user_id=STAFF_ID)
    users.add("root@city.gov", "admin", user_id=ADMIN_ID)
    return users


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage_backend="memory",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024,
    )


@pytest.fixture
def app(settings, repo, user_repo, audit_repo, hub):
    from civic_requests.main import create_app

    return create_app(
        settings,
        request_repo=repo,
        user_repo=user_repo,
        audit_repo=audit_repo,
        notification_hub=hub,
    )


@pytest_asyncio.fixture
async def api_client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX AsyncClient against an app wired to the in-memory backend."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {user_id}"}
