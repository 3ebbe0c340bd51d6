"""App password login against com.atproto.server.createSession."""

import asyncio
import logging
from typing import Optional

from aiohttp import ClientError, ClientSession
from pydantic import ValidationError

from social.graze.xrpc.errors import (
    ApiException,
    DeserializationException,
    TransportException,
    UnexpectedStatusException,
)
from social.graze.xrpc.lexicon import (
    CREATE_SESSION,
    CreateSessionInput,
    CreateSessionOutput,
    parse_api_error,
)
from social.graze.xrpc.session import Session
from social.graze.xrpc.storage.base import Storage, save_session

logger = logging.getLogger(__name__)


def xrpc_url(service_url: str, nsid: str) -> str:
    return f"{service_url.rstrip('/')}/xrpc/{nsid}"


async def login(
    service_url: str,
    identifier: str,
    password: str,
    storage: Storage,
    http_session: Optional[ClientSession] = None,
) -> None:
    """
    Create a session with an identifier and app password and persist it.

    Args:
        service_url: Base URL of the XRPC service
        identifier: Handle, DID or email of the account
        password: Account or app password
        storage: Storage the new session is saved to
        http_session: Optional shared aiohttp session; a temporary one is used otherwise

    Raises:
        ApiException: The service rejected the credentials (401)
        UnexpectedStatusException: Any other non-success status
        DeserializationException: The success body did not match createSession output
        StorageException: The credentials were accepted but the session could not be saved
        TransportException: The request failed at the HTTP layer
    """
    if http_session is None:
        async with ClientSession() as owned_session:
            return await login(
                service_url, identifier, password, storage, http_session=owned_session
            )

    url = xrpc_url(service_url, CREATE_SESSION)
    payload = CreateSessionInput(identifier=identifier, password=password)

    try:
        async with http_session.post(url, json=payload.model_dump()) as response:
            status = response.status
            body = await response.read()
    except (ClientError, asyncio.TimeoutError) as e:
        raise TransportException.from_error(e) from e

    if status == 401:
        error = parse_api_error(body)
        if error is None:
            raise DeserializationException(f"{CREATE_SESSION} returned 401 without an error body")
        raise ApiException(status, error)

    if status != 200:
        logger.warning(f"Unexpected status from {CREATE_SESSION}: {status}")
        raise UnexpectedStatusException(status, parse_api_error(body))

    try:
        output = CreateSessionOutput.model_validate_json(body)
        session = Session.from_create_session(output)
    except ValidationError as e:
        raise DeserializationException(str(e)) from e

    await save_session(storage, session)
    logger.info(f"Created session for {session.handle} ({session.did})")
