"""
Endpoints for bookings. Creation goes through the availability ledger.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import worker
from ..auth import Identity, ensure_self_or_admin, get_current_identity, require_role
from ..db import get_db_session
from ..errors import Forbidden
from ..ledger import AvailabilityLedger, BookingPayload, get_ledger
from ..models import Booking
from ..schemas import BookingCommand, BookingCreated, BookingOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


@router.post("/bookings", response_model=BookingCreated, status_code=201)
async def create_booking(
    booking_cmd: BookingCommand,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_role("guest", "host")),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    """
    Books a vehicle for the requested dates after the payment went through.

    The guest and the host are notified once the booking is committed; a
    failed notification does not affect the booking.
    """
    if booking_cmd.guest.email != identity.email:
        raise Forbidden("Bookings can only be made for yourself")

    payload = BookingPayload(
        guest_email=booking_cmd.guest.email,
        guest_name=booking_cmd.guest.name,
        guest_image=booking_cmd.guest.image,
        host_email=booking_cmd.host,
        transaction_id=booking_cmd.transaction_id,
        price=booking_cmd.price,
    )
    booking = await ledger.admit_booking(db, booking_cmd.vehicle_id, booking_cmd.dates, payload)

    background_tasks.add_task(
        worker.dispatch_booking_notifications,
        payload.guest_email,
        payload.guest_name,
        booking.host_email,
        payload.transaction_id,
    )
    return BookingCreated(id=booking.id, message="Booking confirmed")


@router.get("/bookings", response_model=List[BookingOut])
async def list_guest_bookings(
    email: Optional[str] = None,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
):
    if not email:
        return []
    ensure_self_or_admin(identity, email)
    result = await db.execute(
        select(Booking)
        .where(Booking.guest_email == email, Booking.is_deleted.is_(False))
        .order_by(Booking.date)
    )
    return [BookingOut.from_booking(booking) for booking in result.scalars()]


@router.get("/bookings/host", response_model=List[BookingOut])
async def list_host_bookings(
    email: Optional[str] = None,
    identity: Identity = Depends(require_role("host", "admin")),
    db: AsyncSession = Depends(get_db_session),
):
    if not email:
        return []
    ensure_self_or_admin(identity, email)
    result = await db.execute(
        select(Booking)
        .where(Booking.host_email == email, Booking.is_deleted.is_(False))
        .order_by(Booking.date)
    )
    return [BookingOut.from_booking(booking) for booking in result.scalars()]


@router.delete("/bookings/{booking_id}", response_model=BookingOut)
async def cancel_booking(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    """
    Cancels a booking and frees its dates. Allowed for its guest, its host and admins.
    """
    booking = await ledger.get_booking(db, booking_id)
    if identity.email not in (booking.guest_email, booking.host_email) and not identity.is_admin:
        raise Forbidden("unauthorized access")
    booking = await ledger.cancel_booking(db, booking_id)
    return BookingOut.from_booking(booking)


@router.patch("/bookings/{booking_id}/restore", response_model=BookingOut)
async def restore_booking(
    booking_id: int,
    identity: Identity = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    booking = await ledger.restore_booking(db, booking_id)
    return BookingOut.from_booking(booking)
