"""Builders turning Settings into client collaborators."""

import logging

from aiohttp import ClientSession, ClientTimeout, hdrs
import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from social.graze.xrpc.config import Settings
from social.graze.xrpc.storage.base import Storage
from social.graze.xrpc.storage.database import DatabaseStorage
from social.graze.xrpc.storage.file import FileStorage
from social.graze.xrpc.storage.memory import MemoryStorage
from social.graze.xrpc.storage.redis_storage import RedisStorage

logger = logging.getLogger(__name__)


def create_storage(settings: Settings) -> Storage:
    """
    Create the storage backend selected by ``settings.storage_backend``.

    Raises:
        ValueError: The selected backend is missing its connection string
    """
    backend = settings.storage_backend
    logger.debug(f"Using {backend} session storage")

    if backend == "memory":
        return MemoryStorage()

    if backend == "file":
        return FileStorage(settings.session_file, settings.encryption_key)

    if backend == "redis":
        if settings.redis_dsn is None:
            raise ValueError("redis storage requires REDIS_DSN")
        redis_client = redis.Redis.from_url(str(settings.redis_dsn))
        return RedisStorage(redis_client, settings.session_key, settings.encryption_key)

    if backend == "database":
        if settings.pg_dsn is None:
            raise ValueError("database storage requires PG_DSN")
        engine = create_async_engine(str(settings.pg_dsn))
        database_session_maker = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        return DatabaseStorage(database_session_maker, settings.session_key)

    raise ValueError(f"Unknown storage backend: {backend}")


def create_http_session(settings: Settings) -> ClientSession:
    """Create the aiohttp session used for XRPC requests."""
    return ClientSession(
        timeout=ClientTimeout(total=settings.http_timeout),
        headers={hdrs.USER_AGENT: settings.user_agent},
    )
