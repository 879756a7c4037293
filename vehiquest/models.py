"""
This module contains the database models for the VehiQuest service.
"""
from datetime import datetime, timezone
from typing import Literal

from alchemical import Model
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

Role = Literal["guest", "host", "admin"]
VehicleStatus = Literal["pending", "active", "sold_out", "cancelled"]
BookingStatus = Literal["confirmed", "cancelled"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Model):
    """
    Represents an account in the database.

    Attributes:
        id (int): The primary key of the user.
        email (str): The unique email address of the user.
        name (str): Display name.
        image (str): Avatar URL.
        role (Role): One of guest, host or admin.
        status (str): Onboarding marker, e.g. "Requested" when asking to host.
        timestamp (datetime): When the user was onboarded.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(320), unique=True, nullable=False, index=True)
    name = Column(String(200))
    image = Column(String(500))
    role = Column(String(20), nullable=False, default="guest")
    status = Column(String(40))
    timestamp = Column(DateTime(timezone=True), default=utcnow)


class Vehicle(Model):
    """
    Represents a rentable vehicle listing.

    The host columns are a snapshot of the owning host taken when the listing
    was created, not a foreign key.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    location = Column(String(200))
    category = Column(String(100))
    price = Column(Float, nullable=False)
    image = Column(String(500))
    description = Column(Text)
    seats = Column(Integer)
    total_available_days = Column(Integer)
    host_name = Column(String(200))
    host_email = Column(String(320), nullable=False, index=True)
    host_image = Column(String(500))
    status = Column(String(20), nullable=False, default="active")
    is_deleted = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    booked_dates = relationship(
        "BookedDate",
        lazy="selectin",
        order_by="BookedDate.day",
        viewonly=True,
    )

    @property
    def sold_out(self) -> bool:
        return self.status == "sold_out"


class BookedDate(Model):
    """
    One calendar date committed to a confirmed booking of a vehicle.
    """
    __tablename__ = "booked_dates"
    __table_args__ = (UniqueConstraint("vehicle_id", "day", name="uq_booked_dates_vehicle_day"),)

    id = Column(Integer, primary_key=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    day = Column(String(10), nullable=False)


class Booking(Model):
    """
    Represents a reservation of a vehicle for a set of dates.

    Attributes:
        id (int): The primary key of the booking.
        vehicle_id (int): The booked vehicle.
        dates (list[str]): ISO dates reserved by the booking.
        guest_email (str): Contact of the guest.
        guest_name (str): Display name of the guest.
        host_email (str): Contact of the host owning the vehicle.
        transaction_id (str): Reference returned by the payment processor.
        price (float): Amount paid.
        date (datetime): When the booking was created.
        status (BookingStatus): confirmed or cancelled.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    dates = Column(JSON, nullable=False)
    guest_email = Column(String(320), nullable=False, index=True)
    guest_name = Column(String(200))
    guest_image = Column(String(500))
    host_email = Column(String(320), nullable=False, index=True)
    transaction_id = Column(String(200), nullable=False)
    price = Column(Float, nullable=False, default=0)
    date = Column(DateTime(timezone=True), default=utcnow)
    status = Column(String(20), nullable=False, default="confirmed")
    is_deleted = Column(Boolean, nullable=False, default=False)
