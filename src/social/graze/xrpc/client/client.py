"""Authenticated XRPC client.

The client holds the live session loaded from storage and dispatches GET and
POST procedures with the access token as bearer credential. When the service
answers with ExpiredToken the session is refreshed once, persisted, swapped
in memory and the original request is sent again.

The client does no internal locking. Concurrent calls on one instance can
each observe an expired token and refresh independently; serialize access to
an instance, or open one client per task over a shared storage backend.
"""

import asyncio
import json
import logging
from types import TracebackType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union

from aiohttp import ClientError, ClientSession, hdrs
from pydantic import BaseModel, TypeAdapter, ValidationError
import sentry_sdk

from social.graze.xrpc.client.auth import xrpc_url
from social.graze.xrpc.client.chain import (
    ChainMiddlewareClient,
    ChainResponse,
    ExpiredTokenMiddleware,
)
from social.graze.xrpc.errors import (
    ApiException,
    DeserializationException,
    HttpStatusException,
    RefreshException,
    SerializationException,
    TransportException,
    UnexpectedStatusException,
    XrpcException,
)
from social.graze.xrpc.lexicon import (
    GET_RECORD,
    LIST_RECORDS,
    REFRESH_SESSION,
    Record,
    RecordList,
    RefreshSessionOutput,
)
from social.graze.xrpc.session import Session
from social.graze.xrpc.storage.base import Storage, load_session, save_session

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueryParams = Union[Mapping[str, str], Sequence[Tuple[str, str]]]


def _parse_body(output: Any, chain_response: ChainResponse) -> Any:
    body = chain_response.body
    try:
        if isinstance(body, (str, bytes)):
            return TypeAdapter(output).validate_json(body)
        return TypeAdapter(output).validate_python(body)
    except ValidationError as e:
        raise DeserializationException(str(e)) from e


def _api_error(chain_response: ChainResponse) -> ApiException:
    error = chain_response.api_error()
    if error is None:
        return UnexpectedStatusException(chain_response.status)
    return ApiException(chain_response.status, error)


def _serialize_body(body: Any) -> str:
    try:
        if isinstance(body, BaseModel):
            return body.model_dump_json(by_alias=True)
        return json.dumps(body)
    except (TypeError, ValueError) as e:
        raise SerializationException(str(e)) from e


class Client:
    """XRPC client bound to one service and one persisted session.

    Use :meth:`open` to construct; it loads the session saved by
    :func:`~social.graze.xrpc.client.auth.login` (or placed in storage
    out-of-band).
    """

    def __init__(
        self,
        service_url: str,
        storage: Storage,
        session: Session,
        http_session: ClientSession,
        owns_http_session: bool = False,
    ) -> None:
        self._service_url = service_url.rstrip("/")
        self._storage = storage
        self._session = session
        self._http_session = http_session
        self._owns_http_session = owns_http_session
        self._chain = ChainMiddlewareClient(
            client_session=http_session,
            logger=logger,
            middleware=[ExpiredTokenMiddleware(self._refresh_for_retry)],
        )

    @classmethod
    async def open(
        cls,
        service_url: str,
        storage: Storage,
        http_session: Optional[ClientSession] = None,
    ) -> "Client":
        """
        Construct a client from the session persisted in storage.

        Raises:
            SessionNotFoundException: Nothing has been saved to the storage yet
            StorageException: The storage backend could not be read
        """
        session = await load_session(storage)
        if http_session is None:
            return cls(service_url, storage, session, ClientSession(), owns_http_session=True)
        return cls(service_url, storage, session, http_session)

    @property
    def service_url(self) -> str:
        return self._service_url

    @property
    def session(self) -> Session:
        return self._session

    async def close(self) -> None:
        if self._owns_http_session and not self._http_session.closed:
            await self._http_session.close()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _refresh(self) -> None:
        """
        Exchange the refresh token for a new session.

        The new session is saved before it replaces the in-memory one. When
        saving fails the current session stays active and StorageException
        is raised.
        """
        url = xrpc_url(self._service_url, REFRESH_SESSION)
        headers = {hdrs.AUTHORIZATION: f"Bearer {self._session.jwt.refresh}"}

        try:
            async with self._http_session.post(url, headers=headers) as response:
                if not 200 <= response.status < 300:
                    raise HttpStatusException(response.status, url)
                body = await response.read()
        except (ClientError, asyncio.TimeoutError) as e:
            raise TransportException.from_error(e) from e

        try:
            output = RefreshSessionOutput.model_validate_json(body)
            session = Session.from_refresh_session(output)
        except ValidationError as e:
            raise DeserializationException(str(e)) from e

        await save_session(self._storage, session)
        self._session = session
        logger.info(f"Refreshed session for {session.handle} ({session.did})")

    async def _refresh_for_retry(self) -> str:
        try:
            await self._refresh()
        except XrpcException as e:
            sentry_sdk.capture_exception(e)
            logger.error(f"Error refreshing session: {e}")
            raise RefreshException(e) from e
        return self._session.jwt.access

    async def call(
        self,
        method: str,
        nsid: str,
        output: Type[T],
        params: Optional[QueryParams] = None,
        body: Any = None,
    ) -> T:
        """
        Invoke an XRPC procedure with the current access token.

        An ExpiredToken response triggers one session refresh and one retry
        of the same request. ExpiredToken on the retry is raised as
        ApiException.

        Args:
            method: "GET" (query parameters) or "POST" (JSON body)
            nsid: Namespaced identifier of the procedure
            output: Type the success body is validated into
            params: Query parameters for GET
            body: JSON-serializable value or pydantic model for POST; None sends
                no body, for procedures that take no input

        Raises:
            ApiException: The service returned an error envelope
            UnexpectedStatusException: Non-success status without an error envelope
            RefreshException: The token expired and refreshing it failed
            DeserializationException: The success body did not match ``output``
            SerializationException: ``body`` could not be encoded as JSON
            TransportException: A request failed at the HTTP layer
        """
        method = method.upper()
        headers = {hdrs.AUTHORIZATION: f"Bearer {self._session.jwt.access}"}
        kwargs: Dict[str, Any] = {}

        if method == hdrs.METH_GET:
            if params is not None:
                kwargs["params"] = params
        elif method == hdrs.METH_POST:
            if body is not None:
                headers[hdrs.CONTENT_TYPE] = "application/json"
                kwargs["data"] = _serialize_body(body)
        else:
            raise ValueError(f"Unsupported XRPC method: {method}")

        url = xrpc_url(self._service_url, nsid)
        logger.debug(f"Dispatching {method} {nsid}")

        try:
            async with self._chain.request(
                method, url, headers=headers, **kwargs
            ) as (_, chain_response):
                if not chain_response.ok:
                    raise _api_error(chain_response)
                return _parse_body(output, chain_response)
        except (ClientError, asyncio.TimeoutError) as e:
            raise TransportException.from_error(e) from e

    async def get(
        self, nsid: str, output: Type[T], params: Optional[QueryParams] = None
    ) -> T:
        return await self.call(hdrs.METH_GET, nsid, output, params=params)

    async def post(self, nsid: str, body: Any, output: Type[T]) -> T:
        return await self.call(hdrs.METH_POST, nsid, output, body=body)

    async def get_record(
        self,
        repo: str,
        collection: str,
        rkey: Optional[str] = None,
        value_type: Any = Dict[str, Any],
    ) -> Any:
        """Fetch a single record and return its value."""
        record = await self.get(
            GET_RECORD, Record[value_type], params=_record_query(repo, collection, rkey)
        )
        return record.value

    async def list_records(
        self,
        repo: str,
        collection: str,
        rkey: Optional[str] = None,
        value_type: Any = Dict[str, Any],
    ) -> List[Any]:
        """List records of a collection, returning their values in server order."""
        record_list = await self.get(
            LIST_RECORDS,
            RecordList[value_type],
            params=_record_query(repo, collection, rkey),
        )
        return [record.value for record in record_list.records]


def _record_query(
    repo: str, collection: str, rkey: Optional[str]
) -> List[Tuple[str, str]]:
    query = [("repo", repo), ("collection", collection)]
    if rkey is not None:
        query.append(("rkey", rkey))
    return query
