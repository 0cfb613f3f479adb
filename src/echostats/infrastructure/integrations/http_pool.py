"""Shared HTTP client pool for connection reuse across requests.

Hey future me - this is the CENTRAL http client pool! Every stats request fans out
five or six Spotify calls; without a shared client each of them would open its own
TLS connection. The pool keeps connections alive and caps concurrency.

Usage:
    from echostats.infrastructure.integrations.http_pool import HttpClientPool

    client = await HttpClientPool.get_client()
    response = await client.get("https://api.spotify.com/v1/me", headers=...)

HttpClientPool.close() runs at app shutdown (see lifecycle.py).
"""

import asyncio
import logging
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)


class HttpClientPool:
    """Singleton HTTP client pool for connection reuse.

    Features:
    - Lazy initialization (created on first use, inside the running event loop)
    - Guarded by asyncio.Lock
    - Bounded per-call timeout (a hung upstream call is a failure, not a hang)
    - Proper cleanup at shutdown
    """

    _client: ClassVar[httpx.AsyncClient | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    # Spotify allows plenty of parallel connections; one stats request uses at most 6.
    DEFAULT_TIMEOUT: ClassVar[float] = 10.0
    DEFAULT_MAX_KEEPALIVE: ClassVar[int] = 20
    DEFAULT_MAX_CONNECTIONS: ClassVar[int] = 50

    @classmethod
    def _ensure_lock(cls) -> asyncio.Lock:
        # asyncio.Lock must be created inside a running loop
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_client(
        cls,
        timeout: float | None = None,
        max_keepalive: int | None = None,
        max_connections: int | None = None,
    ) -> httpx.AsyncClient:
        """Get the shared HTTP client instance.

        Config params only apply on the FIRST call; later calls return the
        same instance.

        Args:
            timeout: Per-call timeout in seconds (default: 10.0)
            max_keepalive: Max idle connections to keep open (default: 20)
            max_connections: Max total concurrent connections (default: 50)

        Returns:
            Shared httpx.AsyncClient instance
        """
        async with cls._ensure_lock():
            if cls._client is None:
                effective_timeout = timeout or cls.DEFAULT_TIMEOUT
                effective_keepalive = max_keepalive or cls.DEFAULT_MAX_KEEPALIVE
                effective_max_conn = max_connections or cls.DEFAULT_MAX_CONNECTIONS

                cls._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(effective_timeout),
                    limits=httpx.Limits(
                        max_keepalive_connections=effective_keepalive,
                        max_connections=effective_max_conn,
                    ),
                    http2=True,
                )
                logger.info(
                    "HTTP client pool initialized (timeout=%.1fs, keepalive=%d, max_conn=%d)",
                    effective_timeout,
                    effective_keepalive,
                    effective_max_conn,
                )

            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared HTTP client and release all connections.

        After close(), get_client() creates a new client instance.
        """
        async with cls._ensure_lock():
            if cls._client is not None:
                await cls._client.aclose()
                cls._client = None
                logger.info("HTTP client pool closed")

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the client pool has been initialized (used by /health)."""
        return cls._client is not None

    @classmethod
    def get_pool_stats(cls) -> dict[str, Any]:
        """Get connection pool configuration for monitoring/debugging."""
        if cls._client is None:
            return {"initialized": False}
        return {
            "initialized": True,
            "timeout": cls._client.timeout.read,
            "max_connections": cls.DEFAULT_MAX_CONNECTIONS,
            "max_keepalive": cls.DEFAULT_MAX_KEEPALIVE,
        }
