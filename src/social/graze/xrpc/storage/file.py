"""JSON file session storage.

Writes go to a temporary file in the same directory that then replaces the
target, so a reader never sees a partially written session.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional, Union

from cryptography.fernet import Fernet

from social.graze.xrpc.errors import SessionNotFoundException, StorageException
from social.graze.xrpc.session import Session
from social.graze.xrpc.storage.base import decode_session, encode_session


class FileStorage:
    def __init__(
        self,
        path: Union[str, os.PathLike],
        encryption_key: Optional[Fernet] = None,
    ) -> None:
        self.path = Path(path)
        self._encryption_key = encryption_key

    async def load(self) -> Session:
        try:
            data = await asyncio.to_thread(self.path.read_bytes)
        except FileNotFoundError as e:
            raise SessionNotFoundException(str(self.path)) from e
        except OSError as e:
            raise StorageException.load_failed(str(self.path)) from e
        return decode_session(data, self._encryption_key)

    async def save(self, session: Session) -> None:
        data = encode_session(session, self._encryption_key)
        try:
            await asyncio.to_thread(self._write, data)
        except OSError as e:
            raise StorageException.save_failed(str(self.path)) from e

    def _write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            with open(tmp_path, "wb") as fd:
                fd.write(data)
                fd.flush()
                os.fsync(fd.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
