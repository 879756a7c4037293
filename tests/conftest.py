from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from vehiquest import worker
from vehiquest.auth import create_access_token
from vehiquest.config import Settings
from vehiquest.db import close_db, create_db_and_tables
from vehiquest.ledger import BookingPayload
from vehiquest.main import create_app
from vehiquest.models import User, Vehicle, utcnow

HOST = "host@example.com"
GUEST = "guest@example.com"
ADMIN = "admin@example.com"


def day_range(start, count):
    """ISO strings for `count` consecutive days starting at `start`."""
    return [(start + timedelta(days=offset)).isoformat() for offset in range(count)]


def payload(guest=GUEST, transaction_id="pi_123", price=100.0):
    return BookingPayload(
        guest_email=guest,
        guest_name="Guest",
        host_email=HOST,
        transaction_id=transaction_id,
        price=price,
    )


class FakeTask:
    """Stands in for the Celery notification task."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def delay(self, *args):
        if self.fail:
            raise ConnectionError("broker unreachable")
        self.calls.append(args)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'vehiquest.db'}",
        access_token_secret="test-secret",
        payment_secret_key="sk_test_123",
    )


@pytest.fixture
async def app(settings, anyio_backend):
    api_app = create_app(settings)
    await create_db_and_tables(api_app.state.db)
    yield api_app
    await close_db(api_app.state.db)


@pytest.fixture
def db(app):
    return app.state.db


@pytest.fixture
def ledger(app):
    return app.state.ledger


@pytest.fixture
async def session(db, anyio_backend):
    async with db.Session() as session:
        yield session


@pytest.fixture
async def client(app, anyio_backend):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest.fixture
def login(client, settings):
    def _login(email):
        client.cookies.set("token", create_access_token({"email": email}, settings))
    return _login


@pytest.fixture(autouse=True)
def notifications(monkeypatch):
    task = FakeTask()
    monkeypatch.setattr(worker, "send_notification", task)
    return task


@pytest.fixture
async def users(db, anyio_backend):
    async with db.Session() as session:
        session.add_all([
            User(email=HOST, name="Host", role="host", timestamp=utcnow()),
            User(email=GUEST, name="Guest", role="guest", timestamp=utcnow()),
            User(email=ADMIN, name="Admin", role="admin", timestamp=utcnow()),
        ])
        await session.commit()


@pytest.fixture
def add_vehicle(db):
    async def _add_vehicle(**fields):
        values = {"title": "Toyota Corolla", "price": 50.0, "host_email": HOST, "host_name": "Host"}
        values.update(fields)
        async with db.Session() as session:
            vehicle = Vehicle(**values)
            session.add(vehicle)
            await session.commit()
            await session.refresh(vehicle)
            return vehicle.id
    return _add_vehicle


@pytest.fixture
def june():
    return day_range(date(2024, 6, 1), 5)
