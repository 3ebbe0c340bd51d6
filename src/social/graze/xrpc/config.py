"""
Configuration for XRPC clients.

Settings are loaded from environment variables with defaults suitable for
development. Applications embedding the client build their storage backend and
HTTP session from them through social.graze.xrpc.factory.

Key configuration areas include:
- Service location
- Session storage backend selection and connections
- Encryption of persisted tokens
- HTTP transport options
"""

from typing import Literal, Optional

from cryptography.fernet import Fernet
from pydantic import AliasChoices, Field, PostgresDsn, RedisDsn, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Client settings.

    Environment variables are mapped to fields by name, with aliases for the
    connection strings. For example the Redis connection can be set with either
    REDIS_DSN or REDIS_URL.
    """

    service_url: str = "https://bsky.social"
    """
    Base URL of the XRPC service (PDS or entryway).
    Set with SERVICE_URL environment variable.
    """

    storage_backend: Literal["memory", "file", "redis", "database"] = "file"
    """
    Where sessions are persisted.
    Set with STORAGE_BACKEND environment variable.
    """

    session_file: str = "session.json"
    """
    Path of the session file for the file backend.
    Set with SESSION_FILE environment variable.
    """

    session_key: str = "xrpc:session"
    """
    Key the session is stored under for the redis and database backends.
    Set with SESSION_KEY environment variable.
    """

    redis_dsn: Optional[RedisDsn] = Field(
        None,
        validation_alias=AliasChoices("redis_dsn", "redis_url"),
    )
    """
    Redis connection string for the redis backend.
    Set with REDIS_DSN or REDIS_URL environment variables.
    """

    pg_dsn: Optional[PostgresDsn] = Field(
        None,
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )
    """
    PostgreSQL connection string for the database backend,
    e.g. postgresql+asyncpg://postgres:password@db/xrpc
    Set with PG_DSN or DATABASE_URL environment variables.
    """

    encryption_key: Optional[Fernet] = None
    """
    Fernet key used to encrypt sessions at rest (file and redis backends).
    Can be set to a Fernet object or url-safe base64-encoded key string.
    Set with ENCRYPTION_KEY environment variable.
    """

    user_agent: str = "graze-xrpc"
    """User-Agent header sent with every request."""

    http_timeout: float = 30.0
    """
    Total timeout in seconds for a single HTTP request.
    Set with HTTP_TIMEOUT environment variable.
    """

    @field_validator("encryption_key", mode="before")
    @classmethod
    def decode_encryption_key(cls, v) -> Optional[Fernet]:
        """
        Accept a Fernet object, a url-safe base64-encoded key string, or nothing.

        Raises:
            ValueError: If the input is neither a Fernet object nor a valid key
        """
        if v is None or isinstance(v, Fernet):
            return v
        elif isinstance(v, str):
            if len(v) == 0:
                return None
            return Fernet(v)
        raise ValueError(
            "encryption_key must be a Fernet object or a url-safe base64-encoded key string"
        )
