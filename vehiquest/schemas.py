"""
Request and response models for the VehiQuest API.
"""
from datetime import date, datetime
from typing import Literal, Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .models import Booking, Role, Vehicle, VehicleStatus


class TokenRequest(BaseModel):
    """
    Claims signed into the authentication cookie. Only the email is required.
    """
    model_config = ConfigDict(extra="allow")

    email: EmailStr


class UserCommand(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None
    status: Optional[str] = Field(None, description='Onboarding marker, "Requested" to ask for hosting')


class UserUpdateCommand(BaseModel):
    role: Optional[Role] = None
    status: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: Role = "guest"
    status: Optional[str] = None
    timestamp: Optional[datetime] = None


class Host(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class VehicleCommand(BaseModel):
    """
    Listing fields a host provides when creating or updating a vehicle.
    """
    title: str = Field(..., min_length=1)
    location: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(..., gt=0, description="Price per day")
    image: Optional[str] = None
    description: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1)
    total_available_days: Optional[int] = Field(None, ge=1)
    host: Optional[Host] = None


class VehicleStatusCommand(BaseModel):
    status: VehicleStatus


class VehicleOut(BaseModel):
    id: int
    title: str
    location: Optional[str] = None
    category: Optional[str] = None
    price: float
    image: Optional[str] = None
    description: Optional[str] = None
    seats: Optional[int] = None
    total_available_days: Optional[int] = None
    host: Host
    status: VehicleStatus
    sold_out: bool
    booked_dates: List[str] = []

    @classmethod
    def from_vehicle(cls, vehicle: Vehicle) -> "VehicleOut":
        return cls(
            id=vehicle.id,
            title=vehicle.title,
            location=vehicle.location,
            category=vehicle.category,
            price=vehicle.price,
            image=vehicle.image,
            description=vehicle.description,
            seats=vehicle.seats,
            total_available_days=vehicle.total_available_days,
            host=Host(name=vehicle.host_name, email=vehicle.host_email, image=vehicle.host_image),
            status=vehicle.status,
            sold_out=vehicle.sold_out,
            booked_dates=[booked.day for booked in vehicle.booked_dates],
        )


class Guest(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class BookingCommand(BaseModel):
    """
    Represents the command for booking a vehicle once the payment went through.
    """
    vehicle_id: int
    guest: Guest
    host: EmailStr = Field(..., description="Email of the host owning the vehicle")
    transaction_id: str = Field(..., min_length=1, description="Reference returned by the payment processor")
    price: float = Field(..., ge=0)
    dates: List[date] = Field(..., min_length=1, description="Calendar dates to reserve")


class BookingCreated(BaseModel):
    id: int
    message: str


class BookingOut(BaseModel):
    id: int
    vehicle_id: int
    dates: List[str]
    guest: Guest
    host: str
    transaction_id: str
    price: float
    date: Optional[datetime] = None
    status: Literal["confirmed", "cancelled"]

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingOut":
        return cls(
            id=booking.id,
            vehicle_id=booking.vehicle_id,
            dates=booking.dates,
            guest=Guest(email=booking.guest_email, name=booking.guest_name, image=booking.guest_image),
            host=booking.host_email,
            transaction_id=booking.transaction_id,
            price=booking.price,
            date=booking.date,
            status=booking.status,
        )


class PaymentIntentCommand(BaseModel):
    price: float


class PaymentIntentOut(BaseModel):
    clientSecret: str
