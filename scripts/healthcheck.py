"""Container healthcheck for the HTTP transport.

Checks that /health answers with this service's payload. Exit code 0
indicates healthy. Override the target with METABASE_MCP_HEALTH_URL.
"""

from __future__ import annotations

import os
import sys
from typing import Final

import httpx

DEFAULT_URL: Final[str] = "http://127.0.0.1:8000/health"
SERVICE_NAME: Final[str] = "metabase-mcp"


def main() -> int:
    url = os.getenv("METABASE_MCP_HEALTH_URL", DEFAULT_URL)
    try:
        resp = httpx.get(url, headers={"User-Agent": "metabase-mcp/healthcheck"}, timeout=4)
        if resp.status_code != 200:
            print(f"unexpected status: {resp.status_code}", file=sys.stderr)
            return 1
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        print(f"healthcheck error: {exc}", file=sys.stderr)
        return 1

    healthy = isinstance(data, dict) and data.get("status") == "healthy"
    if not healthy or data.get("service") != SERVICE_NAME:
        print(f"payload not healthy: {data}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - used by Docker
    raise SystemExit(main())
