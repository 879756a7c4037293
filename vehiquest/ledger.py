"""
This module contains the availability ledger of the VehiQuest service.

The ledger is the set of calendar dates committed to confirmed bookings of a
vehicle. Admission of a new booking checks the request against it and commits
the booking and its dates in a single transaction.

Two concurrent admissions for the same vehicle must never both pass the
overlap check. Every write to a vehicle's ledger therefore runs while holding
an in-process lock for that vehicle and starts its transaction by claiming the
vehicle row (a conditional version bump), which serializes writers from other
processes on the store itself. The UNIQUE (vehicle_id, day) constraint on
`booked_dates` rejects whatever slips past both.
"""
import logging
from collections.abc import Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime

import anyio
from fastapi import Request
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import Conflict, InvalidInput, NotFound
from .models import BookedDate, Booking, Vehicle, utcnow

logger = logging.getLogger(__name__)

SOLD_OUT_THRESHOLD = 60
VEHICLE_STATUSES = ("pending", "active", "sold_out", "cancelled")


@dataclass
class BookingPayload:
    """
    Identity and payment details carried by a booking request.
    """
    guest_email: str
    host_email: str
    transaction_id: str
    guest_name: str | None = None
    guest_image: str | None = None
    price: float = 0


def normalize_dates(requested_dates: Sequence[str | date]) -> list[str]:
    """
    Validates the requested dates and returns them as ISO strings.

    Duplicates are collapsed, keeping the order of first appearance.

    Raises:
        InvalidInput: If the sequence is empty or holds something that is not a calendar date.
    """
    if isinstance(requested_dates, str) or not requested_dates:
        raise InvalidInput("At least one date must be requested")

    days: list[str] = []
    for value in requested_dates:
        if isinstance(value, datetime):
            value = value.date()
        if isinstance(value, date):
            day = value.isoformat()
        elif isinstance(value, str):
            try:
                day = date.fromisoformat(value.strip()).isoformat()
            except ValueError:
                raise InvalidInput(f"{value!r} is not a calendar date") from None
        else:
            raise InvalidInput(f"{value!r} is not a calendar date")
        if day not in days:
            days.append(day)
    return days


def _check_payload(payload: BookingPayload):
    missing = [
        name for name in ("guest_email", "host_email", "transaction_id")
        if not (getattr(payload, name, None) or "").strip()
    ]
    if missing:
        raise InvalidInput(f"Missing booking fields: {', '.join(missing)}")


class _VehicleLock:
    def __init__(self):
        self.lock = anyio.Lock()
        self.users = 0


class AvailabilityLedger:
    """
    Admission control for bookings against each vehicle's committed dates.

    Args:
        threshold (int): Committed-date count beyond which a vehicle is sold out.
    """

    def __init__(self, threshold: int = SOLD_OUT_THRESHOLD):
        self.threshold = threshold
        self._locks: dict[int, _VehicleLock] = {}

    @asynccontextmanager
    async def _serialized(self, vehicle_id: int):
        """
        Holds the in-process lock of a vehicle. The lock is dropped once nobody uses it.
        """
        entry = self._locks.get(vehicle_id)
        if entry is None:
            entry = self._locks[vehicle_id] = _VehicleLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[vehicle_id]

    async def get_vehicle(self, session: AsyncSession, vehicle_id: int) -> Vehicle:
        """
        Loads a non-deleted vehicle together with its committed dates.

        Raises:
            NotFound: If the id does not resolve to a live vehicle.
        """
        result = await session.execute(
            select(Vehicle)
            .where(Vehicle.id == vehicle_id, Vehicle.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        vehicle = result.scalar_one_or_none()
        if vehicle is None:
            raise NotFound(f"Vehicle {vehicle_id} not found", reason="vehicle_not_found")
        return vehicle

    async def get_booking(self, session: AsyncSession, booking_id: int) -> Booking:
        """
        Loads a non-deleted booking.

        Raises:
            NotFound: If the id does not resolve to a live booking.
        """
        result = await session.execute(
            select(Booking)
            .where(Booking.id == booking_id, Booking.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found", reason="booking_not_found")
        return booking

    async def conflicting_dates(self, session: AsyncSession, vehicle_id: int, days: list[str]) -> list[str]:
        """
        Returns the subset of `days` already committed for the vehicle, in request order.
        """
        result = await session.execute(
            select(BookedDate.day).where(BookedDate.vehicle_id == vehicle_id, BookedDate.day.in_(days))
        )
        taken = set(result.scalars())
        return [day for day in days if day in taken]

    async def committed_count(self, session: AsyncSession, vehicle_id: int) -> int:
        return await session.scalar(
            select(func.count()).select_from(BookedDate).where(BookedDate.vehicle_id == vehicle_id)
        )

    async def _claim(self, session: AsyncSession, vehicle_id: int) -> Vehicle:
        # Must be the first write of the transaction.
        result = await session.execute(
            update(Vehicle)
            .where(Vehicle.id == vehicle_id, Vehicle.is_deleted.is_(False))
            .values(version=Vehicle.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound(f"Vehicle {vehicle_id} not found", reason="vehicle_not_found")
        return await self.get_vehicle(session, vehicle_id)

    async def _check_admissible(self, session: AsyncSession, vehicle: Vehicle, days: list[str]):
        if vehicle.status == "sold_out":
            raise Conflict(f"Vehicle {vehicle.id} is sold out", reason="sold_out")
        if vehicle.status != "active":
            raise Conflict(f"Vehicle {vehicle.id} is {vehicle.status}", reason="vehicle_unavailable")
        offending = await self.conflicting_dates(session, vehicle.id, days)
        if offending:
            raise Conflict("Some dates are already booked", reason="dates_conflict", dates=offending)

    def _exhausted(self, vehicle: Vehicle, count: int) -> bool:
        if count > self.threshold:
            return True
        return bool(vehicle.total_available_days) and count >= vehicle.total_available_days

    async def refresh_sold_out(self, session: AsyncSession, vehicle: Vehicle) -> bool:
        """
        Marks an active vehicle sold out when its committed dates reach the limit.

        Pending changes are flushed first. The caller commits.
        """
        await session.flush()
        count = await self.committed_count(session, vehicle.id)
        if vehicle.status != "active" or not self._exhausted(vehicle, count):
            return False
        vehicle.status = "sold_out"
        logger.warning(f"Vehicle {vehicle.id} is sold out with {count} committed dates")
        return True

    async def _commit_dates(self, session: AsyncSession, vehicle: Vehicle, booking: Booking, days: list[str]):
        await session.flush()
        session.add_all(BookedDate(vehicle_id=vehicle.id, booking_id=booking.id, day=day) for day in days)
        await self.refresh_sold_out(session, vehicle)

    async def _race_lost(self, session: AsyncSession, vehicle_id: int, days: list[str]) -> Conflict:
        await session.rollback()
        offending = await self.conflicting_dates(session, vehicle_id, days)
        logger.warning(f"Concurrent booking took {offending} on vehicle {vehicle_id}")
        return Conflict("Some dates are already booked", reason="dates_conflict", dates=offending)

    async def admit_booking(
        self,
        session: AsyncSession,
        vehicle_id: int,
        requested_dates: Sequence[str | date],
        payload: BookingPayload,
    ) -> Booking:
        """
        Admits a booking request against the vehicle's availability.

        On success the booking (status confirmed) and its dates are committed
        together and the vehicle may transition to sold out. On failure
        nothing is written.

        Args:
            session (AsyncSession): The database session.
            vehicle_id (int): The vehicle to book.
            requested_dates (Sequence): Calendar dates as ISO strings or `date` objects.
            payload (BookingPayload): Guest, host and payment details.

        Returns:
            Booking: The committed booking.

        Raises:
            InvalidInput: If the dates or the payload are malformed, or the host does not own the vehicle.
            NotFound: If the vehicle does not exist or was deleted.
            Conflict: If the vehicle is not bookable or some dates are already booked.
        """
        days = normalize_dates(requested_dates)
        _check_payload(payload)

        async with self._serialized(vehicle_id):
            try:
                vehicle = await self._claim(session, vehicle_id)
                if payload.host_email.strip().lower() != (vehicle.host_email or "").lower():
                    raise InvalidInput(
                        f"{payload.host_email} does not host vehicle {vehicle_id}", reason="host_mismatch"
                    )
                await self._check_admissible(session, vehicle, days)

                booking = Booking(
                    vehicle_id=vehicle.id,
                    dates=days,
                    guest_email=payload.guest_email,
                    guest_name=payload.guest_name,
                    guest_image=payload.guest_image,
                    host_email=vehicle.host_email,
                    transaction_id=payload.transaction_id,
                    price=payload.price,
                    date=utcnow(),
                    status="confirmed",
                )
                session.add(booking)
                await self._commit_dates(session, vehicle, booking, days)
                await session.commit()
            except IntegrityError:
                raise await self._race_lost(session, vehicle_id, days) from None
            except Exception as exc:
                await session.rollback()
                logger.info(f"Booking rejected for vehicle {vehicle_id}: {exc}")
                raise

        await session.refresh(booking)
        logger.info(f"Booking {booking.id} admitted for vehicle {vehicle_id} on {len(days)} dates")
        return booking

    async def cancel_booking(self, session: AsyncSession, booking_id: int) -> Booking:
        """
        Cancels a booking and releases its dates from the vehicle's ledger.

        A sold out vehicle stays sold out.
        """
        booking = await self.get_booking(session, booking_id)
        if booking.status == "cancelled":
            return booking

        async with self._serialized(booking.vehicle_id):
            try:
                booking.status = "cancelled"
                await session.execute(delete(BookedDate).where(BookedDate.booking_id == booking.id))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        await session.refresh(booking)
        logger.info(f"Booking {booking.id} cancelled, released {len(booking.dates)} dates")
        return booking

    async def restore_booking(self, session: AsyncSession, booking_id: int) -> Booking:
        """
        Re-commits the dates of a cancelled booking, under the same checks as admission.
        """
        booking = await self.get_booking(session, booking_id)
        if booking.status == "confirmed":
            return booking

        vehicle_id = booking.vehicle_id
        days = list(booking.dates)
        async with self._serialized(vehicle_id):
            try:
                vehicle = await self._claim(session, vehicle_id)
                await self._check_admissible(session, vehicle, days)
                booking.status = "confirmed"
                await self._commit_dates(session, vehicle, booking, days)
                await session.commit()
            except IntegrityError:
                raise await self._race_lost(session, vehicle_id, days) from None
            except Exception:
                await session.rollback()
                raise

        await session.refresh(booking)
        logger.info(f"Booking {booking.id} restored on vehicle {vehicle_id}")
        return booking

    async def set_vehicle_status(self, session: AsyncSession, vehicle_id: int, status: str) -> Vehicle:
        """
        Overwrites the status of a vehicle. This is the only way out of sold out.
        """
        if status not in VEHICLE_STATUSES:
            raise InvalidInput(f"Unknown vehicle status {status!r}")

        async with self._serialized(vehicle_id):
            try:
                vehicle = await self._claim(session, vehicle_id)
                previous = vehicle.status
                vehicle.status = status
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        logger.info(f"Vehicle {vehicle_id} status changed from {previous} to {status}")
        return await self.get_vehicle(session, vehicle_id)


def get_ledger(request: Request) -> AvailabilityLedger:
    """
    Dependency that provides the application's ledger.
    """
    return request.app.state.ledger
