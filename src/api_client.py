"""JSON-over-HTTPS transport for the task-manager API.

ApiClient issues one request per call with the caller's bearer token and
turns every failure into ApiError. The sync layer catches ApiError and
converts it to a SyncResult, so nothing raised here reaches a store.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, TypeVar

import aiohttp
from pydantic import ValidationError
from sqlmodel import SQLModel

import config

logger = logging.getLogger(__name__)

TRANSPORT_ERROR_MESSAGE = "An unexpected error occurred"
MALFORMED_RESPONSE_MESSAGE = "Unexpected response from server"

M = TypeVar("M", bound=SQLModel)


class ApiError(Exception):
    """A failed request. ``status`` is None for transport errors (no response)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def error_message(body: Any, status: int) -> str:
    """Server-supplied ``message`` if the error body has one, else a generic status message."""
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return f"Request failed with status code {status}"


def unwrap_list(body: Any, model: type[M]) -> tuple[list[M], int]:
    """Return (items, last_page) from a list response.

    Accepts the paginated envelope ``{data: {data: [...], last_page: N}}`` and
    the bare ``{data: [...]}`` that unpaginated collections (tasks) use.
    """
    if not isinstance(body, dict):
        raise ApiError(MALFORMED_RESPONSE_MESSAGE)
    data = body.get("data")
    if isinstance(data, dict):
        raw_items = data.get("data")
        last_page = data.get("last_page") or 1
    elif isinstance(data, list):
        raw_items = data
        last_page = 1
    else:
        raise ApiError(MALFORMED_RESPONSE_MESSAGE)
    if not isinstance(raw_items, list):
        raise ApiError(MALFORMED_RESPONSE_MESSAGE)
    try:
        items = [model.model_validate(raw) for raw in raw_items]
        last_page = int(last_page)
    except (ValidationError, TypeError, ValueError) as e:
        raise ApiError(MALFORMED_RESPONSE_MESSAGE) from e
    return items, max(1, last_page)


def unwrap_item(body: Any, model: type[M], required: bool = True) -> M | None:
    """Return the resource in ``{data: {...}}``.

    With ``required=False`` a body without a resource yields None instead of
    raising (e.g. assign calls that only answer with a message).
    """
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        if required:
            raise ApiError(MALFORMED_RESPONSE_MESSAGE)
        return None
    try:
        return model.model_validate(data)
    except ValidationError as e:
        if required:
            raise ApiError(MALFORMED_RESPONSE_MESSAGE) from e
        logger.debug("Ignoring unparseable %s in response: %s", model.__name__, e)
        return None


async def _read_body(response: aiohttp.ClientResponse) -> Any:
    text = await response.text()
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class ApiClient:
    """Thin wrapper over one aiohttp.ClientSession, created lazily on first request."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = (base_url or config.api_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty).

        Raises ApiError for HTTP error statuses and transport failures.
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{path}"
        session = self._get_session()
        try:
            async with session.request(
                method, url, params=params, json=json, headers=headers
            ) as response:
                body = await _read_body(response)
                if response.status >= 400:
                    message = error_message(body, response.status)
                    logger.warning("%s %s -> %s: %s", method, path, response.status, message)
                    raise ApiError(message, status=response.status)
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("%s %s failed: %r", method, path, e)
            raise ApiError(TRANSPORT_ERROR_MESSAGE) from e
