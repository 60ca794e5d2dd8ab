"""
Navigation debounce: drops repeated navigation requests that arrive too quickly.
"""
import logging
import time
from collections import OrderedDict
from typing import Callable, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

PLAYER_PAGE = "player-page.html"


def player_url(stream_url: str) -> str:
    return f"{PLAYER_PAGE}?videoUrl={quote(stream_url, safe='')}"


class NavigationDebounce:
    """Accept at most one call per window; rejected calls are dropped, not deferred."""

    def __init__(self, window_ms: int = 1000, clock: Callable[[], float] = time.monotonic):
        self.window_ms = window_ms
        self.clock = clock
        self._last_accepted: Optional[float] = None

    def allow(self, now_ms: float) -> bool:
        if self._last_accepted is not None and now_ms - self._last_accepted < self.window_ms:
            return False
        self._last_accepted = now_ms
        return True

    def navigate(self, url: str) -> Optional[str]:
        """Player URL for url if navigation is allowed now, else None."""
        if not self.allow(self.clock() * 1000):
            logger.warning(f"Navigation blocked by debounce: {url}")
            return None
        logger.info(f"Navigating to: {url}")
        return player_url(url)


class ClientDebounce:
    """
    One NavigationDebounce per client.

    Clients are tracked in a bounded map; the least recently seen client is
    dropped once max_clients is exceeded.
    """

    def __init__(
        self,
        window_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        max_clients: int = 1024,
    ):
        self.window_ms = window_ms
        self.clock = clock
        self.max_clients = max_clients
        self._clients: OrderedDict[str, NavigationDebounce] = OrderedDict()

    def __len__(self) -> int:
        return len(self._clients)

    def for_client(self, client_id: str) -> NavigationDebounce:
        debounce = self._clients.get(client_id)
        if debounce is not None:
            self._clients.move_to_end(client_id)
            return debounce

        debounce = NavigationDebounce(self.window_ms, self.clock)
        self._clients[client_id] = debounce
        if len(self._clients) > self.max_clients:
            self._clients.popitem(last=False)
        return debounce

    def navigate(self, client_id: str, url: str) -> Optional[str]:
        return self.for_client(client_id).navigate(url)
