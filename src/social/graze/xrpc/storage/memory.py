from typing import Optional

from social.graze.xrpc.errors import SessionNotFoundException
from social.graze.xrpc.session import Session


class MemoryStorage:
    """Keeps the session in process memory."""

    def __init__(self, session: Optional[Session] = None) -> None:
        self._session = session

    async def load(self) -> Session:
        if self._session is None:
            raise SessionNotFoundException("memory storage is empty")
        return self._session

    async def save(self, session: Session) -> None:
        self._session = session
