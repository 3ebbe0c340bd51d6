"""AT Protocol session model.

A session pairs the account identity (DID and handle) with the access and
refresh tokens issued by the service. Sessions are immutable; a refresh
produces a new session that replaces the old one wholesale.
"""

from pydantic import BaseModel, ConfigDict, Field

from social.graze.xrpc.lexicon import CreateSessionOutput, RefreshSessionOutput


class Jwt(BaseModel):
    """Access and refresh token pair."""

    model_config = ConfigDict(frozen=True)

    access: str = Field(min_length=1)
    refresh: str = Field(min_length=1)


class Session(BaseModel):
    """Authenticated account session.

    Created by login or by a token refresh, held in memory by the client and
    mirrored in the configured storage backend.
    """

    model_config = ConfigDict(frozen=True)

    did: str
    handle: str
    jwt: Jwt

    @classmethod
    def from_create_session(cls, output: CreateSessionOutput) -> "Session":
        return cls(
            did=output.did,
            handle=output.handle,
            jwt=Jwt(access=output.access_jwt, refresh=output.refresh_jwt),
        )

    @classmethod
    def from_refresh_session(cls, output: RefreshSessionOutput) -> "Session":
        return cls(
            did=output.did,
            handle=output.handle,
            jwt=Jwt(access=output.access_jwt, refresh=output.refresh_jwt),
        )
