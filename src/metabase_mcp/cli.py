"""Command-line entrypoint for the metabase-mcp FastMCP server.

Running `metabase-mcp` starts the server on the default stdio transport.
"""

from __future__ import annotations

import traceback

from fastmcp.utilities.logging import get_logger

from metabase_mcp.server import mcp

# Configure a module-level logger for local server logs.
_logger = get_logger(__name__)


def main() -> None:
    """Start the metabase-mcp FastMCP server via CLI."""
    try:
        mcp.run()
    except KeyboardInterrupt:
        _logger.info("Interrupted by user. Exiting cleanly.")
    except Exception:  # noqa: BLE001
        traceback.print_exc(limit=1)
        raise SystemExit(1) from None


if __name__ == "__main__":
    # Delegate to main() so behavior is consistent across execution paths.
    main()
