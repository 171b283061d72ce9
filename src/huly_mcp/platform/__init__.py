"""Platform (document store) access layer.

Usage:
    from huly_mcp.platform import connect, refs

    client = await connect(config)
    project = await client.find_one(refs.PROJECT, {"identifier": "HULY"})
"""

from . import refs
from .client import Doc, PlatformClient, RestPlatformClient, connect

__all__ = ["refs", "Doc", "PlatformClient", "RestPlatformClient", "connect"]
