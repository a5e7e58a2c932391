"""Configuration service for metabase-mcp.

This module centralizes environment variable handling for the Metabase
connection and the client-side result cache.
"""

from __future__ import annotations

import os


class ConfigService:
    """Service for reading Metabase connection and cache settings."""

    @staticmethod
    def get_metabase_url() -> str:
        """Get the Metabase base URL from environment variable.

        Returns:
            Base URL without a trailing slash

        Raises:
            ValueError: If METABASE_URL environment variable is not set
        """
        url = os.getenv("METABASE_URL")
        if not url:
            error_msg = "METABASE_URL environment variable not set"
            raise ValueError(error_msg)
        return url.rstrip("/")

    @staticmethod
    def get_api_key() -> str:
        """Get the Metabase API key from environment variable.

        Raises:
            ValueError: If METABASE_API_KEY environment variable is not set
        """
        api_key = os.getenv("METABASE_API_KEY")
        if not api_key:
            error_msg = "METABASE_API_KEY environment variable not set"
            raise ValueError(error_msg)
        return api_key

    # ---- Transport ---------------------------------------------------------
    @staticmethod
    def request_timeout_seconds() -> float:
        """Per-request timeout applied by the HTTP client."""
        val = os.getenv("METABASE_REQUEST_TIMEOUT", "30")
        try:
            timeout = float(val)
        except ValueError:
            timeout = 30.0
        return max(1.0, timeout)

    # ---- Result cache ------------------------------------------------------
    @staticmethod
    def cache_ttl_seconds() -> float:
        """Time-to-live for cached single-resource responses."""
        val = os.getenv("METABASE_CACHE_TTL", "600")
        try:
            ttl = float(val)
        except ValueError:
            ttl = 600.0
        return max(0.0, ttl)
