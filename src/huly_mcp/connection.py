"""Process-wide platform connection with single-flight establishment.

Lifecycle: uninitialized -> establishing -> ready -> closed. Concurrent
callers of `ConnectionManager.acquire` while a connection is being
established all await the same attempt, so at most one authentication
handshake is ever in flight. A failed attempt is not cached; the next
`acquire` starts a fresh one.

Usage:
    manager = ConnectionManager()
    client = await manager.acquire()
    ...
    await manager.release()
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .config import HulyConfig, load_config
from .errors import HulyError, PlatformConnectionError
from .platform import PlatformClient, connect

logger = logging.getLogger(__name__)

Connector = Callable[[HulyConfig], Awaitable[PlatformClient]]


class ConnectionManager:
    """Owns the lazy, single-flight acquisition of the shared platform client."""

    def __init__(
        self,
        config_loader: Callable[[], HulyConfig] = load_config,
        connector: Connector = connect,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            config_loader: Returns validated settings; raises ConfigurationError
                when credentials are missing. Called before any network I/O.
            connector: Coroutine function opening an authenticated session.
            timeout: Overrides the configured establishment timeout (seconds).
        """
        self._config_loader = config_loader
        self._connector = connector
        self._timeout = timeout
        self._client: Optional[PlatformClient] = None
        self._pending: Optional[asyncio.Task] = None
        self._closed = False
        self.attempts = 0

    @property
    def state(self) -> str:
        if self._client is not None:
            return "ready"
        if self._pending is not None:
            return "establishing"
        if self._closed:
            return "closed"
        return "uninitialized"

    async def acquire(self) -> PlatformClient:
        """Return the live client, establishing it on first use."""
        if self._client is not None:
            return self._client

        if self._pending is None:
            config = self._config_loader()
            self._pending = asyncio.ensure_future(self._establish(config))

        # Shield so one cancelled waiter does not abort the attempt for the others
        return await asyncio.shield(self._pending)

    async def _establish(self, config: HulyConfig) -> PlatformClient:
        self.attempts += 1
        timeout = self._timeout if self._timeout is not None else config.connect_timeout
        logger.info("Connecting to %s (workspace %s)", config.url, config.workspace)
        try:
            client = await asyncio.wait_for(self._connector(config), timeout)
        except asyncio.TimeoutError:
            logger.error("Connection to %s timed out after %.0fs", config.url, timeout)
            raise PlatformConnectionError(
                f"Timed out after {timeout:.0f}s connecting to {config.url}"
            )
        except HulyError:
            raise
        except Exception as e:
            logger.error("Connection to %s failed: %s", config.url, e)
            raise PlatformConnectionError(f"Could not connect to {config.url}: {e}") from e
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

        self._client = client
        self._closed = False
        return client

    async def release(self) -> None:
        """Close the live client and forget any in-flight attempt."""
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()

        client, self._client = self._client, None
        self._closed = True
        if client is not None:
            logger.info("Closing platform connection")
            await client.close()


_default_manager: Optional[ConnectionManager] = None


def get_manager() -> ConnectionManager:
    """Get or create the process-wide manager."""
    global _default_manager
    if _default_manager is None:
        _default_manager = ConnectionManager()
    return _default_manager


async def get_client() -> PlatformClient:
    """Acquire the process-wide platform client."""
    return await get_manager().acquire()


async def close_client() -> None:
    """Release the process-wide platform client, if any."""
    if _default_manager is not None:
        await _default_manager.release()
