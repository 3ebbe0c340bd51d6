"""XRPC procedure identifiers and wire models.

Only the fields the client relies on are modeled; anything else the service
returns (email, active, didDoc, ...) is ignored.
"""

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

D = TypeVar("D")

CREATE_SESSION = "com.atproto.server.createSession"
REFRESH_SESSION = "com.atproto.server.refreshSession"
GET_RECORD = "com.atproto.repo.getRecord"
LIST_RECORDS = "com.atproto.repo.listRecords"

EXPIRED_TOKEN = "ExpiredToken"
"""API error code signalling the access token must be refreshed."""


class CreateSessionInput(BaseModel):
    identifier: str
    password: str


class CreateSessionOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    did: str
    handle: str
    access_jwt: str = Field(alias="accessJwt")
    refresh_jwt: str = Field(alias="refreshJwt")


class RefreshSessionOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    did: str
    handle: str
    access_jwt: str = Field(alias="accessJwt")
    refresh_jwt: str = Field(alias="refreshJwt")


class ApiError(BaseModel):
    """Error envelope returned by XRPC services."""

    error: str
    message: str = ""

    @property
    def code(self) -> str:
        return self.error


def parse_api_error(body: Any) -> Optional[ApiError]:
    """Parse an XRPC error envelope, returning None when the body is not one.

    Accepts raw bytes or text regardless of the declared content type, or a
    body that was already decoded from JSON.
    """
    try:
        if isinstance(body, (str, bytes)):
            return ApiError.model_validate_json(body)
        if isinstance(body, dict):
            return ApiError.model_validate(body)
    except ValidationError:
        return None
    return None


class Record(BaseModel, Generic[D]):
    uri: str
    cid: Optional[str] = None
    value: D


class RecordList(BaseModel, Generic[D]):
    records: List[Record[D]]
    cursor: Optional[str] = None
