"""Services package for metabase-mcp.

Main Components:
- ConfigService: Environment configuration for the Metabase connection
- ClientManager: Process-wide owner of the Metabase API client
"""

from .client_manager import ClientManager
from .config_service import ConfigService

__all__ = [
    "ClientManager",
    "ConfigService",
]
