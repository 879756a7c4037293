"""
This module contains the database setup and session management for the VehiQuest service.
"""
from typing import Any, AsyncGenerator

from alchemical.aio import Alchemical
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


def create_db(url: str) -> Alchemical:
    """
    Creates the store handle for the given database URL.

    The handle is owned by the application that creates it; nothing in the
    package keeps a module-level connection.
    """
    return Alchemical(url)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession | Any, Any]:
    """
    Dependency that provides a database session scoped to the request.
    """
    async with request.app.state.db.Session() as session:
        yield session


async def create_db_and_tables(db: Alchemical):
    """
    Creates the database and tables.
    """
    await db.create_all()


async def ping(db: Alchemical) -> bool:
    """
    Checks that the store answers a trivial query.
    """
    async with db.Session() as session:
        await session.execute(text("SELECT 1"))
    return True


async def close_db(db: Alchemical):
    """
    Releases the pooled connections of the store handle.
    """
    await db.get_engine().dispose()
