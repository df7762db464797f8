"""Firebase Realtime Database backend over its REST API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from pywaypoint._constants import USER_AGENT
from pywaypoint._redact import redact_for_log
from pywaypoint.config import WaypointConfig
from pywaypoint.exceptions import (
    MalformedRecordError,
    PermissionDeniedError,
    StoreUnavailableError,
    WaypointError,
)
from pywaypoint.models.peer import validate_user_id

_logger = logging.getLogger(__name__)

_PERMISSION_STATUSES = frozenset({401, 403})


class FirebaseLocationStore:
    """Location store talking to ``{database_url}/{locations_path}/{uid}.json``.

    Usage::

        async with FirebaseLocationStore(config) as store:
            record = await store.get("uid-123")

    A caller-owned :class:`aiohttp.ClientSession` may be passed in; it is
    then left open on exit.
    """

    def __init__(
        self,
        config: WaypointConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http = session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FirebaseLocationStore:
        if self._http is None:
            self._http = aiohttp.ClientSession(headers={"user-agent": USER_AGENT})
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    # ------------------------------------------------------------------
    # LocationStore
    # ------------------------------------------------------------------

    async def get(self, peer_id: str) -> dict[str, Any] | None:
        body = await self._request("GET", peer_id)
        if body is None:
            return None
        if not isinstance(body, dict):
            raise MalformedRecordError(
                f"Record for {peer_id} is not an object: {type(body).__name__}",
                peer_id=peer_id,
            )
        return body

    async def set(self, peer_id: str, record: Mapping[str, Any]) -> None:
        await self._request("PUT", peer_id, dict(record))

    async def delete(self, peer_id: str) -> None:
        await self._request("DELETE", peer_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _url(self, peer_id: str) -> str:
        path = self._config.locations_path.strip("/")
        key = validate_user_id(peer_id)
        if path:
            return f"{self._config.base_url}/{path}/{key}.json"
        return f"{self._config.base_url}/{key}.json"

    def _require_http(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise WaypointError("Store not initialized. Use 'async with FirebaseLocationStore(...) as store:'")
        return self._http

    async def _request(self, method: str, peer_id: str, payload: dict[str, Any] | None = None) -> Any:
        """Issue one REST call and return the decoded JSON body.

        Maps failures onto the store error taxonomy:

        - HTTP 401/403 -> :class:`PermissionDeniedError`
        - network errors, timeouts and other non-2xx -> :class:`StoreUnavailableError`
        - undecodable or non-JSON body -> :class:`MalformedRecordError`
        """
        http = self._require_http()
        url = self._url(peer_id)
        params = {"auth": self._config.auth_token} if self._config.auth_token else None

        if payload is not None:
            _logger.debug(
                "%s %s payload=%s",
                method,
                url,
                redact_for_log(payload, keep_coordinates=self._config.log_coordinates),
            )
        else:
            _logger.debug("%s %s", method, url)

        try:
            async with http.request(method, url, params=params, json=payload, timeout=self._timeout) as resp:
                status = resp.status
                text = await resp.text()
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(
                f"Undecodable body for {peer_id}: {exc.reason}",
                peer_id=peer_id,
            ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise StoreUnavailableError(
                f"{method} {peer_id} failed: {exc!r}",
                peer_id=peer_id,
            ) from exc

        if status in _PERMISSION_STATUSES:
            raise PermissionDeniedError(
                f"{method} {peer_id} denied (HTTP {status}): {text[:200]}",
                peer_id=peer_id,
                status_code=status,
            )
        if not 200 <= status < 300:
            raise StoreUnavailableError(
                f"HTTP {status} on {method} {peer_id}: {text[:200]}",
                peer_id=peer_id,
                status_code=status,
            )

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedRecordError(
                f"Invalid JSON for {peer_id}: {text[:64]}",
                peer_id=peer_id,
                status_code=status,
            ) from exc
