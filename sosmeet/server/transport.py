# sosmeet/server/transport.py

"""
WebSocket transport for the relay.

- One listener, one WebSocket per client, one Session per WebSocket.
- Exactly ONE JSON object per text frame; frames of a connection are handed
  to the dispatcher strictly in arrival order.
- Outbound traffic goes through each Connection's bounded outbox, never
  straight to the socket, so a stalled peer cannot block the reader loop.
- Protocol-level ping/pong is left to the websockets library.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from sosmeet.server.dispatcher import Dispatcher
from sosmeet.server.session import Connection, Session


class RelayServer:

    """
    Single WebSocket listener feeding a Dispatcher.

    Pass ``port=0`` to bind an ephemeral port; ``.port`` reports the real one
    once ``start()`` has returned.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        host: str = "0.0.0.0",
        port: int = 3000,
        *,
        outbound_queue_size: int = 256,
        max_message_size: int = 2**20,
        ping_interval: Optional[int] = 20,
        ping_timeout: Optional[int] = 20,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self._host = host
        self._port = port
        self._queue_size = outbound_queue_size
        self._ws_kwargs = dict(
            max_size=max_message_size,
            ping_interval=ping_interval,
            ping_timeout=ping_timeout,
        )
        self._server: Optional[Server] = None
        self._sessions: set[Session] = set()

        self.log = log or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings, dispatcher: Optional[Dispatcher] = None) -> "RelayServer":
        return cls(
            dispatcher or Dispatcher.from_settings(settings),
            settings.host,
            settings.port,
            outbound_queue_size=settings.outbound_queue_size,
            max_message_size=settings.max_message_size,
            ping_interval=settings.ping_interval,
            ping_timeout=settings.ping_timeout,
        )

    # ---- public API -----------------------------------------------------------

    @property
    def port(self) -> int:
        if self._server is None:
            return self._port
        return self._server.sockets[0].getsockname()[1]

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def start(self) -> None:

        """Start the WebSocket listener."""

        self._server = await serve(self._conn_handler, self._host, self._port, **self._ws_kwargs)
        self.log.info("WebSocket listening on ws://%s:%d", self._host, self.port)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def stop(self) -> None:

        """Stop listening and close every open connection."""

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._sessions.clear()

    # ---- connection lifecycle -------------------------------------------------

    async def _conn_handler(self, ws: ServerConnection) -> None:
        connection = Connection(ws, max_queue=self._queue_size)
        session = Session(connection)
        self._sessions.add(session)
        connection.start()
        self.dispatcher.connect(session)
        try:
            async for message in ws:
                self.dispatcher.dispatch(session, message)
        except ConnectionClosed:
            pass
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.log.exception("link error on %s: %s", session.tag(), e)
        finally:
            self._sessions.discard(session)
            self.dispatcher.disconnect(session)
            await connection.close()
