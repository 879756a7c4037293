"""
This module contains the sales statistics shown on the admin, host and guest dashboards.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Booking, User, Vehicle


def chart_data(bookings, header):
    """
    Builds the chart rows: a header followed by one "day/month" point per booking.
    """
    rows = [list(header)]
    for booking in bookings:
        rows.append([f"{booking.date.day}/{booking.date.month}", booking.price])
    return rows


async def _bookings(db: AsyncSession, *criteria):
    result = await db.execute(
        select(Booking)
        .where(Booking.status == "confirmed", Booking.is_deleted.is_(False), *criteria)
        .order_by(Booking.date)
    )
    return result.scalars().all()


async def _count(db: AsyncSession, model, *criteria) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*criteria))


async def _member_since(db: AsyncSession, email):
    return await db.scalar(select(User.timestamp).where(User.email == email))


async def admin_stats(db: AsyncSession) -> dict:
    bookings = await _bookings(db)
    return {
        "totalSale": sum(booking.price for booking in bookings),
        "bookingCount": len(bookings),
        "userCount": await _count(db, User),
        "vehicleCount": await _count(db, Vehicle, Vehicle.is_deleted.is_(False)),
        "chartData": chart_data(bookings, ("Day", "Sale")),
    }


async def host_stats(db: AsyncSession, email: str) -> dict:
    bookings = await _bookings(db, Booking.host_email == email)
    return {
        "totalSale": sum(booking.price for booking in bookings),
        "bookingCount": len(bookings),
        "vehicleCount": await _count(db, Vehicle, Vehicle.host_email == email, Vehicle.is_deleted.is_(False)),
        "chartData": chart_data(bookings, ("Day", "Sale")),
        "hostSince": await _member_since(db, email),
    }


async def guest_stats(db: AsyncSession, email: str) -> dict:
    bookings = await _bookings(db, Booking.guest_email == email)
    return {
        "bookingCount": len(bookings),
        "chartData": chart_data(bookings, ("Day", "Reservation")),
        "guestSince": await _member_since(db, email),
        "totalSpent": sum(booking.price for booking in bookings),
    }
