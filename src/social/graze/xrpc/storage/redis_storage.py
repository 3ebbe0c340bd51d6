from typing import Optional

import redis.asyncio as redis
from cryptography.fernet import Fernet
from redis.exceptions import RedisError

from social.graze.xrpc.errors import SessionNotFoundException, StorageException
from social.graze.xrpc.session import Session
from social.graze.xrpc.storage.base import decode_session, encode_session


class RedisStorage:
    """Stores the session as a single Redis string value under ``key``."""

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str = "xrpc:session",
        encryption_key: Optional[Fernet] = None,
    ) -> None:
        self._redis = redis_client
        self.key = key
        self._encryption_key = encryption_key

    async def load(self) -> Session:
        try:
            data = await self._redis.get(self.key)
        except RedisError as e:
            raise StorageException.load_failed(self.key) from e
        if data is None:
            raise SessionNotFoundException(self.key)
        return decode_session(data, self._encryption_key)

    async def save(self, session: Session) -> None:
        try:
            await self._redis.set(
                self.key, encode_session(session, self._encryption_key)
            )
        except RedisError as e:
            raise StorageException.save_failed(self.key) from e
