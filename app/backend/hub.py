from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, Optional, Set

from nurviz_core import ExplorerSession, load_config, resolve_network_source

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "NURVIZ_CONFIG"


class NoSessionError(RuntimeError):
    """Raised when a command arrives before any network has been loaded."""


class SessionHub:
    """
    Holds the one explorer session served by the backend.

    - load(): swaps in a session and hooks its change notification
    - run(): executes a session command on a worker thread under the hub's lock
    - subscribe(): returns an asyncio.Queue receiving change payloads

    The session notifies from command threads and the refinement worker, so
    payloads are handed to the event loop with ``call_soon_threadsafe``.
    """

    def __init__(self, session: Optional[ExplorerSession] = None, queue_size: int = 16) -> None:
        self._session: Optional[ExplorerSession] = None
        self._lock = asyncio.Lock()
        self._subscribers: Set[asyncio.Queue] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue_size = queue_size
        if session is not None:
            self.load(session)

    @classmethod
    def from_environment(cls, environ=None) -> "SessionHub":
        """Load ``NETWORK_FILE`` (and ``NURVIZ_CONFIG`` when set); empty hub otherwise."""
        environ = os.environ if environ is None else environ
        path = resolve_network_source(environ)
        if path is None:
            logger.warning("NETWORK_FILE is not set; serving without a network")
            return cls()
        config_path = environ.get(CONFIG_FILE_ENV, "").strip()
        config = load_config(config_path) if config_path else None
        return cls(ExplorerSession.from_file(path, config=config))

    # --- session -----------------------------------------------------------
    @property
    def loaded(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ExplorerSession:
        if self._session is None:
            raise NoSessionError("no network loaded")
        return self._session

    def load(self, session: ExplorerSession) -> None:
        if self._session is not None:
            self._session.on_change(None)
            self._session.close()
        self._session = session
        session.on_change(self._on_change)
        logger.info("Serving network with %d cells", len(session.network))
        self._on_change(session)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()

    async def run(self, command: str, *args, **kwargs) -> Any:
        """Call ``session.<command>(*args, **kwargs)`` on a thread, one command at a time."""
        async with self._lock:
            return await asyncio.to_thread(getattr(self.session, command), *args, **kwargs)

    # --- pubsub ------------------------------------------------------------
    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def subscribe(self) -> asyncio.Queue:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        q: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self._subscribers.discard(q)

    def state(self) -> Dict[str, Any]:
        snap = self.session.snapshot()
        snap.pop("graph")
        return snap

    def _on_change(self, session: ExplorerSession) -> None:
        if not self._subscribers or self._loop is None:
            return
        payload = {"type": "graph", "state": self.state(), "graph": session.graph.to_dict()}
        if self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._broadcast(payload)
        else:
            self._loop.call_soon_threadsafe(self._broadcast, payload)

    def _broadcast(self, payload: Dict[str, Any]) -> None:
        # Slow subscribers miss intermediate frames; the next one supersedes them
        for q in list(self._subscribers):
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                logger.debug("Dropping update for a slow subscriber")
