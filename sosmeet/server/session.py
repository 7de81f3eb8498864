from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from websockets.exceptions import ConnectionClosed

from sosmeet.ids import new_id

logger = logging.getLogger(__name__)


class Connection:
    """
    A live WebSocket plus a bounded outbox drained by its own writer task.

    ``push`` never awaits: a slow client fills its own queue and starts losing
    messages instead of stalling the loop that serves everybody else.
    """

    def __init__(self, ws: Any, max_queue: int = 256) -> None:
        self.ws = ws
        self.dropped = 0
        self._outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue)
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._outbox.qsize()

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    def push(self, message: str) -> bool:
        if self._closed:
            return False
        try:
            self._outbox.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Outbox full, dropped message (%d dropped so far)", self.dropped)
            return False
        return True

    async def _drain(self) -> None:
        try:
            while True:
                message = await self._outbox.get()
                await self.ws.send(message)
        except ConnectionClosed:
            self._closed = True
        except Exception as e:
            logger.warning("Writer failed, closing outbox: %s", e)
            self._closed = True

    async def close(self) -> None:
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None


@dataclass(eq=False)
class Session:
    connection: Connection
    session_id: str = field(default_factory=lambda: new_id("sock_"))
    username: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.username is not None

    def tag(self) -> str:
        return f"{self.session_id}:{self.username or '-'}"


class SessionDirectory:
    """username -> live Connection. The most recent login wins."""

    def __init__(self) -> None:
        self._by_user: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._by_user)

    def bind(self, username: str, connection: Connection) -> None:
        previous = self._by_user.get(username)
        self._by_user[username] = connection
        if previous is not None and previous is not connection:
            logger.info("User %s logged in again, newer connection takes over", username)

    def unbind(self, username: str, connection: Connection) -> bool:
        # A superseded connection closing must not evict the newer login
        if self._by_user.get(username) is connection:
            del self._by_user[username]
            return True
        return False

    def lookup(self, username: str) -> Optional[Connection]:
        return self._by_user.get(username)

    def is_online(self, username: str) -> bool:
        return username in self._by_user

    def online_usernames(self) -> List[str]:
        return sorted(self._by_user)
