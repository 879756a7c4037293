"""
Endpoints for vehicle listings.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Identity, ensure_self_or_admin, require_role
from ..db import get_db_session
from ..errors import Forbidden
from ..ledger import AvailabilityLedger, get_ledger
from ..models import Vehicle
from ..schemas import VehicleCommand, VehicleOut, VehicleStatusCommand

logger = logging.getLogger(__name__)

router = APIRouter(tags=["vehicles"])

LISTING_FIELDS = (
    "title", "location", "category", "price", "image",
    "description", "seats", "total_available_days",
)


def _ensure_owner_or_admin(identity: Identity, vehicle: Vehicle):
    if identity.email != vehicle.host_email and not identity.is_admin:
        raise Forbidden("unauthorized access")


@router.get("/vehicles", response_model=List[VehicleOut])
async def list_vehicles(
    category: Optional[str] = None,
    location: Optional[str] = None,
    db: AsyncSession = Depends(get_db_session),
):
    query = select(Vehicle).where(Vehicle.is_deleted.is_(False))
    if category:
        query = query.where(Vehicle.category == category)
    if location:
        query = query.where(Vehicle.location.ilike(f"%{location}%"))
    result = await db.execute(query.order_by(Vehicle.id))
    return [VehicleOut.from_vehicle(vehicle) for vehicle in result.scalars()]


@router.get("/vehicles/host/{email}", response_model=List[VehicleOut])
async def list_host_vehicles(
    email: str,
    identity: Identity = Depends(require_role("host", "admin")),
    db: AsyncSession = Depends(get_db_session),
):
    ensure_self_or_admin(identity, email)
    result = await db.execute(
        select(Vehicle)
        .where(Vehicle.host_email == email, Vehicle.is_deleted.is_(False))
        .order_by(Vehicle.id)
    )
    return [VehicleOut.from_vehicle(vehicle) for vehicle in result.scalars()]


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    return VehicleOut.from_vehicle(await ledger.get_vehicle(db, vehicle_id))


@router.post("/vehicles", response_model=VehicleOut, status_code=201)
async def create_vehicle(
    vehicle_cmd: VehicleCommand,
    identity: Identity = Depends(require_role("host", "admin")),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    """
    Creates a listing owned by the caller.

    Admins may list on behalf of a host by naming the host's email.
    """
    host = vehicle_cmd.host
    host_email = identity.email
    if identity.is_admin and host is not None and host.email:
        host_email = host.email

    vehicle = Vehicle(
        **vehicle_cmd.model_dump(include=set(LISTING_FIELDS)),
        host_name=host.name if host else None,
        host_image=host.image if host else None,
        host_email=host_email,
        status="active",
    )
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    logger.info(f"Vehicle {vehicle.id} listed by {host_email}")
    return VehicleOut.from_vehicle(await ledger.get_vehicle(db, vehicle.id))


@router.put("/vehicles/{vehicle_id}", response_model=VehicleOut)
async def update_vehicle(
    vehicle_id: int,
    vehicle_cmd: VehicleCommand,
    identity: Identity = Depends(require_role("host", "admin")),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    """
    Updates the listing fields of a vehicle.

    The host snapshot only changes when the owning host makes the update;
    committed dates are owned by the ledger. Lowering `total_available_days`
    to or below the committed count sells the vehicle out.
    """
    vehicle = await ledger.get_vehicle(db, vehicle_id)
    _ensure_owner_or_admin(identity, vehicle)

    for field, value in vehicle_cmd.model_dump(include=set(LISTING_FIELDS)).items():
        setattr(vehicle, field, value)
    if vehicle_cmd.host is not None and identity.email == vehicle.host_email:
        vehicle.host_name = vehicle_cmd.host.name
        vehicle.host_image = vehicle_cmd.host.image

    await ledger.refresh_sold_out(db, vehicle)
    await db.commit()
    logger.info(f"Vehicle {vehicle_id} updated by {identity.email}")
    return VehicleOut.from_vehicle(await ledger.get_vehicle(db, vehicle_id))


@router.delete("/vehicles/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: int,
    identity: Identity = Depends(require_role("host", "admin")),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    vehicle = await ledger.get_vehicle(db, vehicle_id)
    _ensure_owner_or_admin(identity, vehicle)
    vehicle.is_deleted = True
    await db.commit()
    logger.info(f"Vehicle {vehicle_id} deleted by {identity.email}")
    return {"success": True, "id": vehicle_id}


@router.patch("/vehicles/status/{vehicle_id}", response_model=VehicleOut)
async def set_vehicle_status(
    vehicle_id: int,
    status_cmd: VehicleStatusCommand,
    identity: Identity = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db_session),
    ledger: AvailabilityLedger = Depends(get_ledger),
):
    """
    Overwrites a vehicle's status. Resetting a sold out vehicle to active happens here.
    """
    vehicle = await ledger.set_vehicle_status(db, vehicle_id, status_cmd.status)
    return VehicleOut.from_vehicle(vehicle)
