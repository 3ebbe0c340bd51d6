from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social.graze.xrpc.errors import SessionNotFoundException, StorageException
from social.graze.xrpc.model.stored_session import StoredSession, upsert_session_stmt
from social.graze.xrpc.session import Session


class DatabaseStorage:
    """Stores the session in the ``xrpc_sessions`` table under ``key``."""

    def __init__(
        self,
        database_session_maker: async_sessionmaker[AsyncSession],
        key: str = "xrpc:session",
    ) -> None:
        self._database_session_maker = database_session_maker
        self.key = key

    async def load(self) -> Session:
        try:
            async with self._database_session_maker() as database_session:
                stmt = select(StoredSession).where(StoredSession.key == self.key)
                stored: Optional[StoredSession] = (
                    await database_session.scalars(stmt)
                ).first()
        except SQLAlchemyError as e:
            raise StorageException.load_failed(self.key) from e

        if stored is None:
            raise SessionNotFoundException(self.key)
        try:
            return stored.to_session()
        except ValidationError as e:
            raise StorageException.load_failed("malformed session row") from e

    async def save(self, session: Session) -> None:
        try:
            async with self._database_session_maker() as database_session:
                async with database_session.begin():
                    await database_session.execute(
                        upsert_session_stmt(self.key, session)
                    )
        except SQLAlchemyError as e:
            raise StorageException.save_failed(self.key) from e
