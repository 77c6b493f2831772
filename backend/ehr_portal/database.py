import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from fastapi import Request
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from ehr_portal.exceptions import Unavailable

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_pre_ping=True)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def session_scope(sessionmaker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """
    Open a session and check out a connection up front, so an unreachable
    database fails fast with Unavailable instead of midway through a handler.
    """
    async with sessionmaker() as session:
        try:
            await session.connection()
        except (OperationalError, InterfaceError, OSError) as e:
            logger.error("Database unreachable: %s", e)
            raise Unavailable() from e
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_sessionmaker(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with session_scope(get_sessionmaker(request)) as session:
        yield session
