"""
Reference counting for backend clients replaced by a host change.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Set

from .base import BaseLLMClient


class ClientLeases:
    """
    Tracks which backend clients are in use.

    A client retired by a host change is closed as soon as its last holder
    releases it. Clients retired outside a running event loop stay open until
    ``aclose``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._holders: Dict[int, int] = {}
        self._retired: List[BaseLLMClient] = []
        self._closing: Set[asyncio.Task] = set()

    def acquire(self, client: BaseLLMClient) -> None:
        key = id(client)
        self._holders[key] = self._holders.get(key, 0) + 1

    def release(self, client: BaseLLMClient) -> None:
        key = id(client)
        remaining = self._holders.get(key, 0) - 1
        if remaining > 0:
            self._holders[key] = remaining
            return

        self._holders.pop(key, None)
        if self._is_retired(client):
            self._close_soon(client)

    def in_use(self, client: BaseLLMClient) -> bool:
        return id(client) in self._holders

    @asynccontextmanager
    async def hold(self, client: BaseLLMClient) -> AsyncIterator[BaseLLMClient]:
        """Keep ``client`` open for the duration of the block."""
        self.acquire(client)
        try:
            yield client
        finally:
            self.release(client)

    def retire(self, client: BaseLLMClient) -> None:
        """Close ``client`` once nothing holds it."""
        if self.in_use(client):
            if not self._is_retired(client):
                self._retired.append(client)
            return
        self._close_soon(client)

    def pending_count(self) -> int:
        """Retired clients not yet closed."""
        return len(self._retired) + len(self._closing)

    async def wait_closed(self) -> None:
        """Wait for scheduled closes to finish."""
        while self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)

    async def aclose(self) -> None:
        """Close every retired client, held or not."""
        await self.wait_closed()
        retired, self._retired = self._retired, []
        for client in retired:
            await self._close(client)

    def _is_retired(self, client: BaseLLMClient) -> bool:
        return any(retired is client for retired in self._retired)

    def _close_soon(self, client: BaseLLMClient) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if not self._is_retired(client):
                self._retired.append(client)
            return

        self._retired = [retired for retired in self._retired if retired is not client]
        task = loop.create_task(self._close(client))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, client: BaseLLMClient) -> None:
        try:
            await client.aclose()
            self.logger.debug(f"Closed retired LLM client for {client.host}")
        except Exception as e:
            self.logger.error(f"Error closing LLM client for {client.host}: {e}")
