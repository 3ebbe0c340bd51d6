"""
Exception taxonomy for the XRPC client.

Every failure surfaced by the client derives from XrpcException. The classes
separate where a failure happened so callers can react differently:

- TransportException: the request never produced a usable HTTP exchange
- ApiException: the service answered with a structured {error, message}
- StorageException: the session backend rejected a read or write
- DeserializationException / SerializationException: a body did not match its shape
- RefreshException: a dispatched call needed a token refresh and the refresh failed

Messages carry a stable "error-xrpc-NNNN" prefix for matching in logs.
"""

from typing import Optional

from social.graze.xrpc.lexicon import ApiError


class XrpcException(Exception):
    """Base class for all client failures."""


class TransportException(XrpcException):
    """Connection or HTTP-layer failure. Never retried by the client."""

    @staticmethod
    def from_error(error: BaseException) -> "TransportException":
        return TransportException(f"error-xrpc-1000 Transport failure: {error!r}")


class HttpStatusException(TransportException):
    """Non-success status returned without an application-level error envelope."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"error-xrpc-1001 Unexpected HTTP status {status} from {url}")
        self.status = status
        self.url = url


class ApiException(XrpcException):
    """Structured error reported by the service."""

    def __init__(self, status: int, error: ApiError) -> None:
        super().__init__(
            f"error-xrpc-2000 API error {error.error} ({status}): {error.message}"
        )
        self.status = status
        self.error = error

    @property
    def code(self) -> str:
        return self.error.error

    @property
    def message(self) -> str:
        return self.error.message


class UnexpectedStatusException(ApiException):
    """Status code outside the documented contract of a procedure."""

    def __init__(self, status: int, error: Optional[ApiError] = None) -> None:
        super().__init__(
            status,
            error
            or ApiError(error="UnexpectedStatus", message=f"HTTP status {status}"),
        )


class StorageException(XrpcException):
    """Session backend failed to load or save.

    The backend-specific error is chained as ``__cause__``.
    """

    @staticmethod
    def load_failed(detail: str = "") -> "StorageException":
        return StorageException(f"error-xrpc-3000 Unable to load session: {detail}")

    @staticmethod
    def save_failed(detail: str = "") -> "StorageException":
        return StorageException(f"error-xrpc-3001 Unable to save session: {detail}")


class SessionNotFoundException(StorageException):
    """No session has been persisted yet."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(f"error-xrpc-3002 No session found: {detail}")


class DeserializationException(XrpcException):
    """Response body did not match the expected shape."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(f"error-xrpc-4000 Invalid response body: {detail}")


class SerializationException(XrpcException):
    """Request body could not be encoded as JSON."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(f"error-xrpc-4001 Unable to encode request body: {detail}")


class RefreshException(XrpcException):
    """Token refresh failed while recovering from an expired access token."""

    def __init__(self, reason: XrpcException) -> None:
        super().__init__(f"error-xrpc-5000 Session refresh failed: {reason}")
        self.reason = reason
