import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from policyflow.config import settings
from policyflow.core.errors import InternalError

logger = logging.getLogger(__name__)


def create_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; SQLite connections get WAL, FK and busy-timeout pragmas."""
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.execute(f"PRAGMA busy_timeout = {int(settings.SQLITE_BUSY_TIMEOUT_MS)}")
            cursor.close()

    return engine


engine = create_engine(settings.SQLALCHEMY_DATABASE_URI, echo=False)
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()

# One writer at a time. asyncio locks are bound to the loop they first wait on,
# so keep one per running loop.
_write_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()


def _write_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _write_locks.get(loop)
    if lock is None:
        lock = _write_locks[loop] = asyncio.Lock()
    return lock


async def _acquire_within(lock: asyncio.Lock, timeout: float) -> None:
    """Acquire ``lock`` or raise ``asyncio.TimeoutError`` after ``timeout`` seconds.

    An acquire that completes while the timeout fires is released again, so a
    failed wait never leaves the lock held.
    """
    acquire = asyncio.ensure_future(lock.acquire())
    try:
        await asyncio.wait_for(asyncio.shield(acquire), timeout=timeout)
    except BaseException:
        if acquire.done() and not acquire.cancelled():
            lock.release()
        else:
            acquire.cancel()
        raise


@asynccontextmanager
async def serialized_write(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a read-check-write sequence as the only writer and commit it once.

    Everything done on ``session`` inside the block is committed as a single
    transaction when the block exits, or rolled back if it raises. Waiting for
    the lock is bounded by ``WRITE_LOCK_TIMEOUT_SECONDS``.
    """
    lock = _write_lock()
    try:
        await _acquire_within(lock, settings.WRITE_LOCK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error("Timed out after %ss waiting for the write lock", settings.WRITE_LOCK_TIMEOUT_SECONDS)
        raise InternalError("database is busy, retry later")

    try:
        # Close any read transaction opened earlier in the request so the
        # write starts from a fresh snapshot.
        if session.in_transaction():
            await session.commit()
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
    finally:
        lock.release()


# Dependency
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
