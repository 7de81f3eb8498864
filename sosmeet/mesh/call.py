from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from sosmeet.mesh.peer import PeerBackend, PeerHandshake, PeerState
from sosmeet.protocol.commands import CallPresence, WebRTC
from sosmeet.protocol.types import CALL_PRESENCE, KIND_ANSWER, KIND_ICE, KIND_OFFER, WEBRTC

logger = logging.getLogger(__name__)

SendCommand = Callable[[Dict[str, Any]], Awaitable[None]]
BackendFactory = Callable[[str], PeerBackend]


class MeshCall:
    """
    One participant's view of a full-mesh call in a group.

    ``join`` asks the relay who is online; every online member we have no
    handshake with yet gets dialed. Incoming offers/answers/candidates are
    routed to the handshake for their sender.
    """

    def __init__(self, me: str, group_id: str, send: SendCommand,
                 backend_factory: BackendFactory) -> None:
        self.me = me
        self.group_id = group_id
        self._send = send
        self._backend_factory = backend_factory
        self.peers: Dict[str, PeerHandshake] = {}
        self.active = False

    async def join(self) -> None:
        if self.active:
            return
        self.active = True
        await self._send(CallPresence(group_id=self.group_id).to_wire())

    async def leave(self) -> None:
        self.active = False
        peers, self.peers = self.peers, {}
        for peer in peers.values():
            await peer.close()

    async def drop(self, username: str) -> None:
        peer = self.peers.pop(username, None)
        if peer is not None:
            await peer.close()

    async def handle(self, event: Dict[str, Any]) -> None:
        """Feed any relay event; the ones that matter to this call are acted on."""
        event_type = event.get("type")
        if event_type == CALL_PRESENCE:
            await self.on_presence(event)
        elif event_type == WEBRTC:
            await self.on_signal(event)

    async def on_presence(self, event: Dict[str, Any]) -> None:
        if not self.active or event.get("groupId") != self.group_id:
            return
        for username in event.get("onlineMembers") or []:
            if username == self.me or username in self.peers:
                continue
            await self._peer(username).start()

    async def on_signal(self, event: Dict[str, Any]) -> None:
        group_id = event.get("groupId")
        if not self.active or (group_id and group_id != self.group_id):
            return

        sender = event.get("from")
        payload = event.get("payload")
        if not isinstance(payload, dict):
            return
        kind = payload.get("kind")
        if not sender or sender == self.me:
            return

        if kind == KIND_OFFER:
            peer = self.peers.get(sender)
            if peer is not None and peer.state in (PeerState.CONNECTED, PeerState.CLOSED):
                # sender left and rejoined; start over with a fresh handshake
                logger.info("New offer from %s, replacing %s handshake", sender, peer.state.value)
                await self.drop(sender)
            await self._peer(sender).on_offer(payload.get("sdp"))
        elif kind == KIND_ANSWER:
            peer = self.peers.get(sender)
            if peer is not None:
                await peer.on_answer(payload.get("sdp"))
        elif kind == KIND_ICE:
            await self._peer(sender).on_ice(payload.get("candidate"))
        else:
            logger.debug("Unknown signal kind %r from %s", kind, sender)

    def _peer(self, username: str) -> PeerHandshake:
        peer: Optional[PeerHandshake] = self.peers.get(username)
        if peer is None:
            peer = PeerHandshake(self.me, username, self._backend_factory(username), self._signal)
            self.peers[username] = peer
        return peer

    async def _signal(self, to: str, payload: Dict[str, Any]) -> None:
        await self._send(WebRTC(group_id=self.group_id, to=to, payload=payload).to_wire())
