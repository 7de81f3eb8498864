from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Union

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from sosmeet.protocol.commands import Command, Login
from sosmeet.protocol.types import STATE

logger = logging.getLogger(__name__)


class RelayClient:
    """
    Thin asyncio client for the relay: sends commands, queues every event.

    A background listener task parses incoming frames into ``inbox``; callers
    pull from it with ``recv`` / ``expect`` / ``poll``.
    """

    def __init__(self, uri: str) -> None:
        self.uri = uri
        self.ws: Optional[ClientConnection] = None
        self.username: Optional[str] = None
        self.inbox: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self._listener: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "RelayClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def connect(self) -> None:
        self.ws = await connect(self.uri)
        self._listener = asyncio.create_task(self._listen())

    async def close(self) -> None:
        if self.ws is not None:
            await self.ws.close()
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None

    async def _listen(self) -> None:
        try:
            async for raw in self.ws:
                try:
                    obj = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("[IN] non-JSON frame: %r", raw)
                    continue
                await self.inbox.put(obj)
        except ConnectionClosed:
            pass

    # ---- outbound -------------------------------------------------------------

    async def send(self, command: Union[Command, Dict[str, Any]]) -> None:
        obj = command.to_wire() if isinstance(command, Command) else command
        await self.ws.send(json.dumps(obj))

    async def send_raw(self, text: str) -> None:
        await self.ws.send(text)

    async def login(self, username: str, timeout: float = 3.0) -> Dict[str, Any]:
        await self.send(Login(username=username))
        state = await self.expect(STATE, timeout=timeout)
        self.username = state["me"]
        return state

    # ---- inbound --------------------------------------------------------------

    async def recv(self, timeout: float = 3.0) -> Dict[str, Any]:
        return await asyncio.wait_for(self.inbox.get(), timeout)

    async def poll(self, timeout: float = 0.3) -> Optional[Dict[str, Any]]:
        """Next event, or None if nothing arrives within ``timeout``."""
        try:
            return await self.recv(timeout)
        except asyncio.TimeoutError:
            return None

    async def expect(self, event_type: str, timeout: float = 3.0) -> Dict[str, Any]:
        """Skip events until one of ``event_type`` arrives."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise asyncio.TimeoutError(f"no {event_type} within {timeout}s")
            event = await self.recv(remaining)
            if event.get("type") == event_type:
                return event
            logger.debug("skipping %s while waiting for %s", event.get("type"), event_type)

    def drain(self) -> List[Dict[str, Any]]:
        events = []
        while not self.inbox.empty():
            events.append(self.inbox.get_nowait())
        return events
