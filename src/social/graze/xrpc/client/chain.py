from abc import ABC, abstractmethod
from dataclasses import dataclass
import json
from types import TracebackType
from typing import (
    Any,
    Awaitable,
    Callable,
    Optional,
    Sequence,
    Tuple,
    Union,
    Protocol,
)
import logging
from aiohttp import ClientResponse, ClientSession, hdrs
from aiohttp.typedefs import StrOrURL
from multidict import CIMultiDictProxy

from social.graze.xrpc.lexicon import EXPIRED_TOKEN, ApiError, parse_api_error

RequestFunc = Callable[..., Awaitable[ClientResponse]]

RefreshFunc = Callable[[], Awaitable[str]]
"""Refreshes the session and returns the new access token."""

REFRESHED_CTX_KEY = "xrpc_session_refreshed"

ATTEMPT_MAX = 2
"""Requests sent per logical call: the original and at most one retry."""

logger = logging.getLogger(__name__)


class _LoggerStub(Protocol):
    """_Logger defines which methods logger object should have."""

    @abstractmethod
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    @abstractmethod
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    @abstractmethod
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass


_LoggerType = Union[_LoggerStub, logging.Logger]


@dataclass
class ChainRequest:
    method: str
    url: StrOrURL
    headers: dict[str, Any] | None = None
    trace_request_ctx: dict[str, Any] | None = None
    kwargs: dict[str, Any] | None = None

    @staticmethod
    def from_chain_request(request: "ChainRequest") -> "ChainRequest":
        return ChainRequest(
            method=request.method,
            url=request.url,
            headers=dict(request.headers or {}),
            trace_request_ctx=dict(request.trace_request_ctx or {}),
            kwargs=dict(request.kwargs or {}),
        )

    @property
    def refreshed(self) -> bool:
        return bool((self.trace_request_ctx or {}).get(REFRESHED_CTX_KEY, False))


@dataclass
class ChainResponse:
    status: int
    headers: CIMultiDictProxy[str]
    body: str | bytes | dict[str, Any] | list[Any] | None = None

    @staticmethod
    async def from_aiohttp_response(response: ClientResponse) -> "ChainResponse":
        status = response.status
        headers = response.headers

        content_type = response.headers.get(hdrs.CONTENT_TYPE, "")
        raw = await response.read()

        if content_type.startswith("application/json"):
            try:
                return ChainResponse(status=status, headers=headers, body=json.loads(raw))
            except ValueError:
                return ChainResponse(status=status, headers=headers, body=raw)
        elif content_type.startswith("text/"):
            return ChainResponse(
                status=status,
                headers=headers,
                body=raw.decode(response.charset or "utf-8", errors="replace"),
            )
        else:
            return ChainResponse(status=status, headers=headers, body=raw)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def api_error(self) -> Optional[ApiError]:
        return parse_api_error(self.body)


NextChainResponseCallbackType = (
    Tuple[ClientResponse, ChainResponse]
    | Tuple[ClientResponse, ChainResponse, ChainRequest]
)

NextChainCallbackType = Callable[
    [ChainRequest], Awaitable[NextChainResponseCallbackType]
]


class RequestMiddlewareBase(ABC):
    @abstractmethod
    async def handle(
        self, next: NextChainCallbackType, request: ChainRequest
    ) -> NextChainResponseCallbackType:
        pass

    def handle_gen(self, next: NextChainCallbackType) -> NextChainCallbackType:
        async def next_invoke(request: ChainRequest) -> NextChainResponseCallbackType:
            return await self.handle(next, request)

        return next_invoke


class ExpiredTokenMiddleware(RequestMiddlewareBase):
    """Refreshes the session once when the service reports an expired token.

    The replacement request carries the new access token and is marked as
    refreshed. A refreshed request that is answered with ExpiredToken again
    is passed through unchanged.
    """

    def __init__(self, refresh: RefreshFunc) -> None:
        super().__init__()
        self._refresh = refresh

    async def handle(
        self, next: NextChainCallbackType, request: ChainRequest
    ) -> NextChainResponseCallbackType:
        response = await next(request)
        client_response = response[0]
        chain_response = response[1]

        if chain_response.status != 400:
            return response

        error = chain_response.api_error()
        if error is None or error.code != EXPIRED_TOKEN:
            return response

        if request.refreshed:
            logger.warning(
                f"Access token reported expired after refresh: {request.method} {request.url}"
            )
            return client_response, chain_response

        logger.info(f"Access token expired, refreshing session: {request.url}")
        access_token = await self._refresh()

        new_request = ChainRequest.from_chain_request(request)
        new_request.headers = {
            **(new_request.headers or {}),
            hdrs.AUTHORIZATION: f"Bearer {access_token}",
        }
        new_request.trace_request_ctx = {
            **(new_request.trace_request_ctx or {}),
            REFRESHED_CTX_KEY: True,
        }

        return client_response, chain_response, new_request


class EndOfLineChainMiddleware:
    def __init__(self, request_func: RequestFunc, logger: _LoggerType) -> None:
        super().__init__()
        self._request_func = request_func
        self._logger = logger

    async def handle(self, request: ChainRequest) -> NextChainResponseCallbackType:

        self._logger.debug(f"Making request: {request.method} {request.url}")

        response: ClientResponse = await self._request_func(
            request.method.lower(),
            request.url,
            headers=request.headers,
            trace_request_ctx={
                **(request.trace_request_ctx or {}),
            },
            **(request.kwargs or {}),
        )

        return response, await ChainResponse.from_aiohttp_response(response)


class ChainMiddlewareContext:
    def __init__(
        self,
        chain_callback: NextChainCallbackType,
        chain_request: ChainRequest,
        logger: _LoggerType,
    ) -> None:
        self._chain_callback = chain_callback
        self._chain_request = chain_request
        self._logger = logger

        self.client_response: ClientResponse | None = None

    async def _do_request(self) -> Tuple[ClientResponse, ChainResponse]:
        current_attempt = 0

        chain_request = self._chain_request

        while True:
            current_attempt += 1

            if current_attempt > ATTEMPT_MAX:
                raise RuntimeError(
                    f"Max attempts reached: {chain_request.method} {chain_request.url}"
                )

            self._logger.debug(
                f"Attempt {current_attempt} out of {ATTEMPT_MAX}: {chain_request.method} {chain_request.url}"
            )

            response = await self._chain_callback(chain_request)
            client_response = response[0]
            chain_response = response[1]
            new_request = None
            if len(response) == 3:
                new_request = response[2]

            self.client_response = client_response

            if new_request is None:
                return client_response, chain_response

            client_response.release()
            chain_request = new_request

    async def __aenter__(self) -> Tuple[ClientResponse, ChainResponse]:
        try:
            return await self._do_request()
        except BaseException:
            if self.client_response is not None and not self.client_response.closed:
                self.client_response.release()
            raise

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.client_response is not None and not self.client_response.closed:
            self.client_response.release()


class ChainMiddlewareClient:
    def __init__(
        self,
        client_session: ClientSession,
        logger: Optional[_LoggerType] = None,
        middleware: Sequence[RequestMiddlewareBase] | None = None,
    ) -> None:
        self._client = client_session
        self._middleware = middleware

        self._logger: _LoggerType = logger or logging.getLogger("xrpc_chain")

    def request(
        self,
        method: str,
        url: StrOrURL,
        **kwargs: Any,
    ) -> ChainMiddlewareContext:
        chain_request = ChainRequest(
            method=method,
            url=url,
            headers=kwargs.pop("headers", {}),
            trace_request_ctx=kwargs.pop("trace_request_ctx", None),
            kwargs=kwargs,
        )

        end_of_line_middleware = EndOfLineChainMiddleware(
            request_func=self._client.request,
            logger=self._logger,
        )

        chain_callback: NextChainCallbackType = end_of_line_middleware.handle

        full_middleware_chain = reversed(self._middleware or [])

        for mw in full_middleware_chain:
            chain_callback = mw.handle_gen(chain_callback)

        return ChainMiddlewareContext(
            chain_callback=chain_callback,
            chain_request=chain_request,
            logger=self._logger,
        )
