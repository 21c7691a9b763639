"""Client error types for Workcraft stronghold interactions."""

from __future__ import annotations


class WorkcraftClientError(Exception):
    """Base error for Workcraft client failures."""


class NotInitializedError(WorkcraftClientError):
    """Credential material was requested before the client was initialized."""


class WorkcraftTimeout(WorkcraftClientError):
    """Timeout while communicating with the stronghold."""


class WorkcraftConnectionError(WorkcraftClientError):
    """Network connection to the stronghold failed."""


class WorkcraftHandshakeError(WorkcraftClientError):
    """Realtime channel handshake failed."""


class ConnectivityError(WorkcraftClientError):
    """Startup connectivity probe did not reach a healthy stronghold."""


class DecodeError(WorkcraftClientError):
    """Inbound realtime event could not be decoded."""


class RequestFailedError(WorkcraftClientError):
    """HTTP response error from the stronghold."""

    def __init__(self, status: int, message: str, body: str = "") -> None:
        super().__init__(f"{message}: {body}" if body else message)
        self.status = status
        self.body = body


class StorageUnavailableError(WorkcraftClientError):
    """Required stronghold tables are missing from the database."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"Missing tables: {', '.join(missing)}. "
            "Run `python3 -m workcraft setup_database_tables` to set up tables."
        )
        self.missing = missing
