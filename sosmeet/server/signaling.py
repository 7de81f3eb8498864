from __future__ import annotations

import logging
from typing import Any, List, Optional

from sosmeet.persistence.groups import GroupRegistry
from sosmeet.protocol.events import ev_webrtc
from sosmeet.server.broadcast import BroadcastRouter
from sosmeet.server.session import SessionDirectory

logger = logging.getLogger(__name__)


class SignalingRelay:
    """
    Directed forwarding of WebRTC handshake payloads between live sessions.

    Payloads (offer / answer / ice) are passed through untouched; the relay
    never inspects them and never waits for the recipient.
    """

    def __init__(self, groups: GroupRegistry, directory: SessionDirectory,
                 router: BroadcastRouter) -> None:
        self.groups = groups
        self.directory = directory
        self.router = router

    def relay(self, sender: str, to: str, group_id: Optional[str],
              payload: Any) -> bool:
        delivered = self.router.deliver([to], ev_webrtc(sender, group_id, payload))
        if not delivered:
            logger.debug("Signal %s -> %s dropped, recipient offline", sender, to)
        return bool(delivered)

    def presence(self, group_id: str, requester: str) -> List[str]:
        """Members of the group with a live session, in member order."""
        group = self.groups.get_for_member(group_id, requester)
        return [u for u in group.member_list() if self.directory.is_online(u)]
