"""Credential strategies for authenticating against the stronghold.

Two strategies are supported:
- JwtCredentialStrategy: HS256 token with iat/nbf/exp claims, valid for 24h
- HashedKeyCredentialStrategy: hex SHA-256 digest of the API key

The rest of the client only asks a CredentialManager for the header value
and for the value used to open the realtime channel.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from typing import Final, Protocol

import jwt

from .config import CREDENTIAL_HASHED, CREDENTIAL_JWT
from .errors import NotInitializedError

_LOGGER = logging.getLogger(__name__)

TOKEN_EXPIRATION: Final = 24 * 60 * 60


class CredentialStrategy(Protocol):
    """Derives credential material from the API key."""

    def derive(self, secret: str) -> str:
        """Return the stable header credential for ``secret``."""

    def channel_credential(self, secret: str, cached: str) -> str:
        """Return the credential used to open the realtime channel."""


class JwtCredentialStrategy:
    """Sign short-lived HS256 tokens with the API key."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def create_token(self, secret: str) -> str:
        now = int(self._clock())
        claims = {
            "api_key": secret,
            "iat": now,
            "nbf": now,
            "exp": now + TOKEN_EXPIRATION,
        }
        return jwt.encode(claims, secret, algorithm="HS256")

    def derive(self, secret: str) -> str:
        return self.create_token(secret)

    def channel_credential(self, secret: str, cached: str) -> str:
        # Fresh token per channel open so reconnects never reuse an expired one
        return self.create_token(secret)


class HashedKeyCredentialStrategy:
    """Send the hex SHA-256 digest of the API key as a static value."""

    def derive(self, secret: str) -> str:
        return hashlib.sha256(secret.encode("utf-8")).hexdigest()

    def channel_credential(self, secret: str, cached: str) -> str:
        return cached


def strategy_for(name: str) -> CredentialStrategy:
    """Return the credential strategy registered under ``name``."""
    if name == CREDENTIAL_JWT:
        return JwtCredentialStrategy()
    if name == CREDENTIAL_HASHED:
        return HashedKeyCredentialStrategy()
    raise ValueError(f"Unknown credential strategy: {name}")


class CredentialManager:
    """Cache credential material derived by an injected strategy."""

    def __init__(self, strategy: CredentialStrategy) -> None:
        self._strategy = strategy
        self._secret: str | None = None
        self._credential: str | None = None

    @property
    def is_established(self) -> bool:
        return self._credential is not None

    def establish(self, secret: str) -> str:
        """Derive and cache credential material for ``secret``."""
        if not secret:
            raise ValueError("API key must not be empty")
        self._secret = secret
        self._credential = self._strategy.derive(secret)
        _LOGGER.debug("Credential established (%s)", type(self._strategy).__name__)
        return self._credential

    @property
    def credential(self) -> str:
        """Return the cached header credential.

        Raises:
            NotInitializedError: If establish() has not been called
        """
        if self._credential is None:
            raise NotInitializedError("Client must be initialized before use")
        return self._credential

    def channel_credential(self) -> str:
        """Return the credential used to open the realtime channel."""
        if self._secret is None or self._credential is None:
            raise NotInitializedError("Client must be initialized before use")
        return self._strategy.channel_credential(self._secret, self._credential)
