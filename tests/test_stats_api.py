"""
HTTP tests for the dashboard statistics and payment intents.
"""
from datetime import datetime

import pytest

from vehiquest import payments
from vehiquest.errors import InvalidInput
from vehiquest.models import Booking
from vehiquest.stats import chart_data

from conftest import ADMIN, GUEST, HOST, payload

pytestmark = pytest.mark.anyio


@pytest.fixture
async def booked(ledger, session, add_vehicle, users, anyio_backend):
    vehicle_id = await add_vehicle()
    await add_vehicle(host_email="other@example.com")
    await ledger.admit_booking(session, vehicle_id, ["2024-05-01"], payload(price=100.0))
    second = await ledger.admit_booking(session, vehicle_id, ["2024-05-02"], payload(price=50.0))
    cancelled = await ledger.admit_booking(session, vehicle_id, ["2024-05-03"], payload(price=999.0))
    await ledger.cancel_booking(session, cancelled.id)
    return second


def test_chart_data_rows():
    bookings = [Booking(date=datetime(2024, 3, 7), price=80.0)]

    assert chart_data(bookings, ("Day", "Sale")) == [["Day", "Sale"], ["7/3", 80.0]]


async def test_admin_stat(client, login, booked):
    login(ADMIN)

    stats = (await client.get("/admin-stat")).json()

    assert stats["totalSale"] == 150.0
    assert stats["bookingCount"] == 2
    assert stats["userCount"] == 3
    assert stats["vehicleCount"] == 2
    assert stats["chartData"][0] == ["Day", "Sale"]
    assert [row[1] for row in stats["chartData"][1:]] == [100.0, 50.0]


async def test_host_stat(client, login, booked):
    login(HOST)

    stats = (await client.get("/host-stat")).json()

    assert stats["totalSale"] == 150.0
    assert stats["bookingCount"] == 2
    assert stats["vehicleCount"] == 1
    assert stats["hostSince"] is not None


async def test_guest_stat(client, login, booked):
    login(GUEST)

    stats = (await client.get("/guest-stat")).json()

    assert stats["totalSpent"] == 150.0
    assert stats["bookingCount"] == 2
    assert stats["chartData"][0] == ["Day", "Reservation"]
    assert stats["guestSince"] is not None


async def test_stats_are_role_gated(client, login, users):
    login(GUEST)

    assert (await client.get("/admin-stat")).status_code == 403
    assert (await client.get("/host-stat")).status_code == 403


async def test_payment_intent(client, login, users, monkeypatch):
    created = []

    def fake_create(api_key, amount):
        created.append((api_key, amount))
        return "pi_secret"

    monkeypatch.setattr(payments, "_create_intent", fake_create)
    login(GUEST)

    response = await client.post("/create-payment-intent", json={"price": 12.5})

    assert response.json() == {"clientSecret": "pi_secret"}
    assert created == [("sk_test_123", 1250)]


async def test_payment_intent_rejects_tiny_amounts(client, login, users):
    login(GUEST)

    response = await client.post("/create-payment-intent", json={"price": 0.001})

    assert response.status_code == 400
    assert response.json()["reason"] == "invalid_input"


async def test_payment_intent_requires_login(client):
    assert (await client.post("/create-payment-intent", json={"price": 10})).status_code == 401


@pytest.mark.parametrize("price", [None, "abc", 0])
def test_amount_in_cents_validation(price):
    with pytest.raises(InvalidInput):
        payments.amount_in_cents(price)
