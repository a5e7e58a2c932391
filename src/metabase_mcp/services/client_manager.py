"""Client manager for metabase-mcp.

Provides a process-wide `MetabaseApiClient` created lazily on first use and
closed during FastMCP lifespan shutdown.
"""

from __future__ import annotations

import asyncio
import threading
from typing import ClassVar

from fastmcp.utilities.logging import get_logger

from metabase_mcp.client.api import MetabaseApiClient


class ClientManager:
    """Singleton owner of the shared Metabase API client.

    The client is built from environment configuration the first time a tool
    needs it, so the server can start (and answer /health) before Metabase
    settings are validated.
    """

    _instance: ClassVar[ClientManager | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, client: MetabaseApiClient | None = None) -> None:
        self._client = client
        self._init_lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @classmethod
    def get_instance(cls) -> ClientManager:
        """Get the singleton instance of ClientManager."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (primarily for testing)."""
        with cls._lock:
            cls._instance = None

    async def get_client(self) -> MetabaseApiClient:
        """Return the shared client, creating it on first call.

        Raises:
            ValueError: If required Metabase settings are missing
        """
        if self._client is not None:
            return self._client
        async with self._init_lock:
            if self._client is None:
                self._client = MetabaseApiClient.from_config()
                self._logger.info("Metabase client initialized for %s", self._client.base_url)
        return self._client

    async def shutdown(self) -> None:
        """Close the shared client if one was created."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        self._logger.info("Metabase client closed")
