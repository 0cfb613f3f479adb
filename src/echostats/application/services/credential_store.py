"""Credential store for one client session.

Hey future me - this holds ONE CredentialPair and nothing else. No refresh logic,
no HTTP. Its lifecycle is:

    created (from the bearer/refresh headers of a request)
      -> replaced (only by TokenManager after a successful refresh)
      -> cleared (logout, or terminal auth failure: client must log in again)

The `version` counter goes up on every replace/clear; `was_refreshed` is derived
from it and tells the stats router to send the new tokens back. Stores are NOT shared between users; every
session gets its own instance.
"""

import logging

from echostats.domain.entities import CredentialPair

logger = logging.getLogger(__name__)


class CredentialStore:
    """Holds the current credential pair of one client session."""

    def __init__(self, credentials: CredentialPair | None = None) -> None:
        self._credentials = credentials
        self._version = 0

    @classmethod
    def from_tokens(cls, access_token: str, refresh_token: str | None = None) -> "CredentialStore":
        """Create a store from client-held tokens."""
        return cls(CredentialPair(access_token=access_token, refresh_token=refresh_token))

    @property
    def current(self) -> CredentialPair | None:
        """The current pair, or None after clear()."""
        return self._credentials

    @property
    def access_token(self) -> str | None:
        return self._credentials.access_token if self._credentials else None

    @property
    def refresh_token(self) -> str | None:
        return self._credentials.refresh_token if self._credentials else None

    @property
    def version(self) -> int:
        """Incremented on every replace() and clear()."""
        return self._version

    @property
    def was_refreshed(self) -> bool:
        """Whether the pair changed since the store was created."""
        return self._version > 0 and self._credentials is not None

    def replace(self, credentials: CredentialPair) -> None:
        """Store a newer pair. Only TokenManager should call this."""
        if self._credentials is not None and credentials == self._credentials:
            return
        self._credentials = credentials
        self._version += 1

    def clear(self) -> None:
        """Destroy the pair (logout / re-authentication required)."""
        if self._credentials is None:
            return
        self._credentials = None
        self._version += 1
        logger.debug("Credential store cleared")
