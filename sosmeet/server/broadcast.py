from __future__ import annotations

import logging
from typing import Iterable, List

from sosmeet.protocol.events import Event, encode
from sosmeet.server.session import Connection, SessionDirectory

logger = logging.getLogger(__name__)


class BroadcastRouter:
    """Best-effort, at-most-once fan-out of events to usernames."""

    def __init__(self, directory: SessionDirectory) -> None:
        self.directory = directory

    def deliver(self, usernames: Iterable[str], event: Event) -> List[str]:
        """
        Push ``event`` to every listed user with a live session.

        Offline users are skipped silently. Returns the usernames whose
        connection accepted the event.
        """
        message = encode(event)
        delivered = []
        for username in usernames:
            connection = self.directory.lookup(username)
            if connection is None:
                continue
            if connection.push(message):
                delivered.append(username)
        logger.debug("%s delivered to %s", event.get("type"), delivered)
        return delivered

    def reply(self, connection: Connection, event: Event) -> bool:
        return connection.push(encode(event))
