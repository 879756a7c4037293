"""
HTTP tests for booking creation, listing and cancellation.
"""
import pytest

from vehiquest import worker

from conftest import ADMIN, GUEST, HOST, FakeTask

pytestmark = pytest.mark.anyio


def booking_body(vehicle_id, dates, guest=GUEST, transaction_id="pi_123", host=HOST):
    return {
        "vehicle_id": vehicle_id,
        "guest": {"email": guest, "name": "Guest"},
        "host": host,
        "transaction_id": transaction_id,
        "price": 250.0,
        "dates": dates,
    }


async def test_booking_is_admitted_and_notifies(client, login, users, add_vehicle, notifications, june):
    vehicle_id = await add_vehicle()
    login(GUEST)

    response = await client.post("/bookings", json=booking_body(vehicle_id, june))

    assert response.status_code == 201
    body = response.json()
    assert body["id"] > 0
    assert body["message"] == "Booking confirmed"

    vehicle = (await client.get(f"/vehicles/{vehicle_id}")).json()
    assert vehicle["booked_dates"] == june

    recipients = [call[0] for call in notifications.calls]
    assert recipients == [GUEST, HOST]
    assert "pi_123" in notifications.calls[0][2]
    assert "Guest is on the way" in notifications.calls[1][2]


async def test_conflict_reports_offending_dates(client, login, users, add_vehicle, notifications):
    vehicle_id = await add_vehicle()
    login(GUEST)
    await client.post("/bookings", json=booking_body(vehicle_id, ["2024-05-01", "2024-05-02"]))

    response = await client.post(
        "/bookings", json=booking_body(vehicle_id, ["2024-05-02", "2024-05-03"], transaction_id="pi_456")
    )

    assert response.status_code == 409
    assert response.json() == {
        "reason": "dates_conflict",
        "message": "Some dates are already booked",
        "dates": ["2024-05-02"],
    }
    vehicle = (await client.get(f"/vehicles/{vehicle_id}")).json()
    assert vehicle["booked_dates"] == ["2024-05-01", "2024-05-02"]
    assert len(notifications.calls) == 2


async def test_notification_failure_does_not_fail_booking(client, login, users, add_vehicle, monkeypatch, june):
    vehicle_id = await add_vehicle()
    monkeypatch.setattr(worker, "send_notification", FakeTask(fail=True))
    login(GUEST)

    response = await client.post("/bookings", json=booking_body(vehicle_id, june))

    assert response.status_code == 201
    bookings = (await client.get("/bookings", params={"email": GUEST})).json()
    assert [booking["status"] for booking in bookings] == ["confirmed"]


async def test_booking_unknown_vehicle(client, login, users, notifications, june):
    login(GUEST)

    response = await client.post("/bookings", json=booking_body(9999, june))

    assert response.status_code == 404
    assert response.json()["reason"] == "vehicle_not_found"
    assert notifications.calls == []


async def test_booking_names_the_listing_host(client, login, users, add_vehicle, notifications, june):
    vehicle_id = await add_vehicle()
    login(GUEST)

    response = await client.post(
        "/bookings", json=booking_body(vehicle_id, june, host="someone@elsewhere.com")
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "host_mismatch"
    assert notifications.calls == []
    vehicle = (await client.get(f"/vehicles/{vehicle_id}")).json()
    assert vehicle["booked_dates"] == []


async def test_booking_requires_dates(client, login, users, add_vehicle):
    vehicle_id = await add_vehicle()
    login(GUEST)

    response = await client.post("/bookings", json=booking_body(vehicle_id, []))

    assert response.status_code == 422


async def test_booking_requires_login(client, add_vehicle, june):
    vehicle_id = await add_vehicle()

    response = await client.post("/bookings", json=booking_body(vehicle_id, june))

    assert response.status_code == 401
    assert response.json()["reason"] == "unauthorized"


async def test_admins_cannot_book(client, login, users, add_vehicle, june):
    vehicle_id = await add_vehicle()
    login(ADMIN)

    response = await client.post("/bookings", json=booking_body(vehicle_id, june, guest=ADMIN))

    assert response.status_code == 403


async def test_cannot_book_for_someone_else(client, login, users, add_vehicle, june):
    vehicle_id = await add_vehicle()
    login(HOST)

    response = await client.post("/bookings", json=booking_body(vehicle_id, june))

    assert response.status_code == 403


async def test_unknown_users_book_as_guests(client, login, add_vehicle, notifications, june):
    vehicle_id = await add_vehicle()
    login("new@example.com")

    response = await client.post("/bookings", json=booking_body(vehicle_id, june, guest="new@example.com"))

    assert response.status_code == 201


async def test_sold_out_vehicle_rejects_bookings(client, login, users, add_vehicle, notifications):
    vehicle_id = await add_vehicle(status="sold_out")
    login(GUEST)

    response = await client.post("/bookings", json=booking_body(vehicle_id, ["2024-05-01"]))

    assert response.status_code == 409
    assert response.json()["reason"] == "sold_out"


async def test_guest_and_host_listings(client, login, users, add_vehicle, notifications, june):
    vehicle_id = await add_vehicle()
    login(GUEST)
    await client.post("/bookings", json=booking_body(vehicle_id, june))

    guest_bookings = (await client.get("/bookings", params={"email": GUEST})).json()
    assert len(guest_bookings) == 1
    assert guest_bookings[0]["guest"]["email"] == GUEST
    assert guest_bookings[0]["dates"] == june
    assert (await client.get("/bookings")).json() == []
    assert (await client.get("/bookings", params={"email": HOST})).status_code == 403
    assert (await client.get("/bookings/host", params={"email": HOST})).status_code == 403

    login(HOST)
    host_bookings = (await client.get("/bookings/host", params={"email": HOST})).json()
    assert [booking["id"] for booking in host_bookings] == [guest_bookings[0]["id"]]


async def test_cancel_and_restore(client, login, users, add_vehicle, notifications, june):
    vehicle_id = await add_vehicle()
    login(GUEST)
    booking_id = (await client.post("/bookings", json=booking_body(vehicle_id, june))).json()["id"]

    response = await client.delete(f"/bookings/{booking_id}")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert (await client.get(f"/vehicles/{vehicle_id}")).json()["booked_dates"] == []

    assert (await client.patch(f"/bookings/{booking_id}/restore")).status_code == 403
    login(ADMIN)
    response = await client.patch(f"/bookings/{booking_id}/restore")
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert (await client.get(f"/vehicles/{vehicle_id}")).json()["booked_dates"] == june


async def test_strangers_cannot_cancel(client, login, users, add_vehicle, notifications, june):
    vehicle_id = await add_vehicle()
    login(GUEST)
    booking_id = (await client.post("/bookings", json=booking_body(vehicle_id, june))).json()["id"]

    login("stranger@example.com")
    response = await client.delete(f"/bookings/{booking_id}")

    assert response.status_code == 403
    assert (await client.delete("/bookings/9999")).status_code == 404
