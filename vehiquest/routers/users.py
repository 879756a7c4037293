"""
Endpoints that save users and manage their roles.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Identity, require_role
from ..db import get_db_session
from ..errors import NotFound
from ..models import User, utcnow
from ..schemas import UserCommand, UserOut, UserUpdateCommand

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


async def _find_user(db: AsyncSession, email: str) -> User | None:
    return await db.scalar(select(User).where(User.email == email))


@router.put("/users/{email}", response_model=UserOut)
async def save_user(email: str, user_cmd: UserCommand, db: AsyncSession = Depends(get_db_session)):
    """
    Saves a user on first login.

    An existing user is only modified when asking to become a host
    (`status == "Requested"`); otherwise the stored user is returned as is.
    """
    user = await _find_user(db, email)
    if user is not None:
        if user_cmd.status != "Requested":
            return user
        for field, value in user_cmd.model_dump(exclude_none=True).items():
            setattr(user, field, value)
        logger.info(f"{email} requested to become a host")
    else:
        user = User(email=email, role="guest", timestamp=utcnow(), **user_cmd.model_dump(exclude_none=True))
        db.add(user)
        logger.info(f"Saved new user {email}")

    await db.commit()
    await db.refresh(user)
    return user


@router.get("/users/{email}", response_model=UserOut)
async def get_user(email: str, db: AsyncSession = Depends(get_db_session)):
    user = await _find_user(db, email)
    if user is None:
        raise NotFound("User not found", reason="user_not_found")
    return user


@router.get("/users", response_model=List[UserOut])
async def list_users(
    identity: Identity = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(select(User).order_by(User.id))
    return result.scalars().all()


@router.put("/users/update/{email}", response_model=UserOut)
async def update_user(
    email: str,
    update_cmd: UserUpdateCommand,
    identity: Identity = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Changes a user's role or status, creating the user when unknown.
    """
    user = await _find_user(db, email)
    if user is None:
        user = User(email=email, role="guest")
        db.add(user)
    for field, value in update_cmd.model_dump(exclude_none=True).items():
        setattr(user, field, value)
    user.timestamp = utcnow()

    await db.commit()
    await db.refresh(user)
    logger.info(f"{identity.email} updated {email} to role {user.role}")
    return user
