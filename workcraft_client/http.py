"""Authenticated HTTP gateway for stronghold endpoints."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from .config import API_KEY_HEADER
from .credentials import CredentialManager
from .errors import (
    ConnectivityError,
    WorkcraftConnectionError,
    WorkcraftTimeout,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayResponse:
    """Status and body text of a completed stronghold call."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body)


class RequestGateway:
    """HTTP client wrapper attaching the stronghold credential to every call."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        credentials: CredentialManager,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _auth_headers(self) -> dict[str, str]:
        # Raises NotInitializedError before any request is attempted
        return {API_KEY_HEADER: self._credentials.credential}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
    ) -> GatewayResponse:
        """Send an authenticated request and return its status and body.

        Raises:
            NotInitializedError: If no credential has been established
            WorkcraftTimeout: If the request times out
            WorkcraftConnectionError: If the network request fails
        """
        headers = self._auth_headers()
        url = self._url(path)
        try:
            async with self._session.request(
                method,
                url,
                headers=headers,
                json=json,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                body = await resp.text()
                return GatewayResponse(resp.status, body)
        except TimeoutError as err:
            raise WorkcraftTimeout(f"{method} {path} timed out") from err
        except aiohttp.ClientError as err:
            raise WorkcraftConnectionError(f"{method} {path} failed") from err

    async def probe(self, path: str, timeout: float) -> bool:
        """Check the stronghold is reachable; never raises on failure.

        Returns:
            True if the stronghold answered with a 2xx status
        """
        url = self._url(path)
        headers = self._auth_headers()
        _LOGGER.debug("Probing %s", url)
        try:
            try:
                async with self._session.get(
                    url,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as resp:
                    if not 200 <= resp.status < 300:
                        raise ConnectivityError(
                            f"Server responded with status {resp.status}"
                        )
            except TimeoutError as err:
                raise ConnectivityError(
                    "Connection timeout - server might be offline"
                ) from err
            except aiohttp.ClientError as err:
                raise ConnectivityError(
                    f"Failed to connect to the stronghold server: {err}"
                ) from err
        except ConnectivityError as err:
            _LOGGER.error("%s", err)
            return False

        _LOGGER.info("Stronghold server is online")
        return True
