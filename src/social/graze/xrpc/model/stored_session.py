"""Persisted XRPC session model.

Stores the identity and token pair of a session under a caller-chosen key so
several accounts can share one table.
"""

from datetime import datetime, timezone

from sqlalchemy import Index
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Mapped

from social.graze.xrpc.model.base import Base, keypk, str512, str1024, timestamptz
from social.graze.xrpc.session import Jwt, Session


class StoredSession(Base):
    """Session row keyed by storage key.

    Tokens are replaced together on every save; a row is never partially
    updated.
    """

    __tablename__ = "xrpc_sessions"

    key: Mapped[keypk]
    did: Mapped[str512]
    handle: Mapped[str512]
    access_token: Mapped[str1024]
    refresh_token: Mapped[str1024]
    updated_at: Mapped[timestamptz]

    __table_args__ = (Index("idx_xrpc_sessions_did", "did"),)

    def to_session(self) -> Session:
        return Session(
            did=self.did,
            handle=self.handle,
            jwt=Jwt(access=self.access_token, refresh=self.refresh_token),
        )


def upsert_session_stmt(key: str, session: Session):
    """Create PostgreSQL upsert statement for a stored session.

    Inserts a new row for the key or overwrites identity and tokens of the
    existing one.
    """
    now = datetime.now(timezone.utc)
    values = {
        "did": session.did,
        "handle": session.handle,
        "access_token": session.jwt.access,
        "refresh_token": session.jwt.refresh,
        "updated_at": now,
    }
    return (
        insert(StoredSession)
        .values([{"key": key, **values}])
        .on_conflict_do_update(
            index_elements=["key"],
            set_=values,
        )
    )
