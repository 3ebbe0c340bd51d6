"""Storage protocol for persisted sessions."""

import logging
from typing import Optional, Protocol, Union, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from social.graze.xrpc.errors import StorageException
from social.graze.xrpc.session import Session

logger = logging.getLogger(__name__)


@runtime_checkable
class Storage(Protocol):
    """Pluggable persistence for a single session.

    ``load`` raises SessionNotFoundException when nothing has been saved and
    StorageException when the backend is unavailable. ``save`` overwrites any
    previously saved session and raises StorageException on failure.
    """

    async def load(self) -> Session: ...

    async def save(self, session: Session) -> None: ...


def encode_session(session: Session, encryption_key: Optional[Fernet] = None) -> bytes:
    data = session.model_dump_json().encode("utf-8")
    if encryption_key is not None:
        return encryption_key.encrypt(data)
    return data


def decode_session(
    data: Union[str, bytes], encryption_key: Optional[Fernet] = None
) -> Session:
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        if encryption_key is not None:
            data = encryption_key.decrypt(data)
        return Session.model_validate_json(data)
    except InvalidToken as e:
        raise StorageException.load_failed("unable to decrypt session") from e
    except ValidationError as e:
        raise StorageException.load_failed("malformed session data") from e


async def load_session(storage: Storage) -> Session:
    """Load a session, coercing backend-specific failures to StorageException."""
    try:
        return await storage.load()
    except StorageException:
        raise
    except Exception as e:
        logger.exception(f"Error loading session from {type(storage).__name__}")
        raise StorageException.load_failed(str(e)) from e


async def save_session(storage: Storage, session: Session) -> None:
    """Save a session, coercing backend-specific failures to StorageException."""
    try:
        await storage.save(session)
    except StorageException:
        raise
    except Exception as e:
        logger.exception(f"Error saving session to {type(storage).__name__}")
        raise StorageException.save_failed(str(e)) from e
