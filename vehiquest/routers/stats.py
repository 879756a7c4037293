"""
Dashboard statistics for admins, hosts and guests.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import stats
from ..auth import Identity, get_current_identity, require_role
from ..db import get_db_session

router = APIRouter(tags=["stats"])


@router.get("/admin-stat")
async def admin_stat(
    identity: Identity = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db_session),
):
    return await stats.admin_stats(db)


@router.get("/host-stat")
async def host_stat(
    identity: Identity = Depends(require_role("host")),
    db: AsyncSession = Depends(get_db_session),
):
    return await stats.host_stats(db, identity.email)


@router.get("/guest-stat")
async def guest_stat(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
):
    return await stats.guest_stats(db, identity.email)
