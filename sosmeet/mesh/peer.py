"""
Client-side handshake with one remote peer of a mesh call.

    NEW --start()----> OFFER_SENT -----on_answer()----> CONNECTED
    NEW --on_offer()-> OFFER_RECEIVED --answer sent---> CONNECTED
    any --close()----> CLOSED

ICE candidates that arrive before the remote description is applied are
buffered and replayed, in arrival order, right after it is applied.

When both sides dial at once (offer glare) the peer with the lower username
is the polite one: it abandons its own offer and answers the incoming one,
while the other side ignores the incoming offer and waits for its answer.

The actual media stack sits behind ``PeerBackend`` so the state machine can
drive aiortc, a browser bridge or a test double alike.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Protocol

from sosmeet.protocol.types import KIND_ANSWER, KIND_ICE, KIND_OFFER

logger = logging.getLogger(__name__)

MAX_PENDING_ICE = 64

# (recipient username, signaling payload)
SendSignal = Callable[[str, Dict[str, Any]], Awaitable[None]]


class PeerBackend(Protocol):
    async def create_offer(self) -> Dict[str, Any]: ...
    async def create_answer(self) -> Dict[str, Any]: ...
    async def set_local_description(self, sdp: Dict[str, Any]) -> None: ...
    async def set_remote_description(self, sdp: Dict[str, Any]) -> None: ...
    async def add_ice_candidate(self, candidate: Dict[str, Any]) -> None: ...
    async def close(self) -> None: ...


class PeerState(str, Enum):
    NEW = "NEW"
    OFFER_SENT = "OFFER_SENT"
    OFFER_RECEIVED = "OFFER_RECEIVED"
    CONNECTED = "CONNECTED"
    CLOSED = "CLOSED"


class PeerHandshake:
    def __init__(self, local: str, remote: str, backend: PeerBackend, send: SendSignal,
                 max_pending_ice: int = MAX_PENDING_ICE) -> None:
        self.local = local
        self.remote = remote
        self.backend = backend
        self._send = send
        self.state = PeerState.NEW
        self.remote_description_set = False
        self.max_pending_ice = max_pending_ice
        self._pending_ice: List[Dict[str, Any]] = []

    @property
    def polite(self) -> bool:
        return self.local < self.remote

    @property
    def pending_ice(self) -> int:
        return len(self._pending_ice)

    async def start(self) -> None:
        """Dial the remote peer: create and send an offer."""
        if self.state != PeerState.NEW:
            logger.debug("start() ignored for %s in %s", self.remote, self.state.value)
            return
        offer = await self.backend.create_offer()
        await self.backend.set_local_description(offer)
        self.state = PeerState.OFFER_SENT
        await self._send(self.remote, {"kind": KIND_OFFER, "sdp": offer})

    async def on_offer(self, sdp: Dict[str, Any]) -> None:
        if self.state == PeerState.OFFER_SENT:
            if not self.polite:
                logger.debug("Offer glare with %s, keeping our offer", self.remote)
                return
            logger.debug("Offer glare with %s, answering theirs", self.remote)
        elif self.state != PeerState.NEW:
            logger.debug("Offer from %s ignored in %s", self.remote, self.state.value)
            return

        self.state = PeerState.OFFER_RECEIVED
        await self.backend.set_remote_description(sdp)
        await self._remote_description_applied()

        answer = await self.backend.create_answer()
        await self.backend.set_local_description(answer)
        await self._send(self.remote, {"kind": KIND_ANSWER, "sdp": answer})
        self.state = PeerState.CONNECTED

    async def on_answer(self, sdp: Dict[str, Any]) -> None:
        if self.state != PeerState.OFFER_SENT:
            logger.debug("Answer from %s ignored in %s", self.remote, self.state.value)
            return
        await self.backend.set_remote_description(sdp)
        await self._remote_description_applied()
        self.state = PeerState.CONNECTED

    async def on_ice(self, candidate: Dict[str, Any]) -> None:
        if self.state == PeerState.CLOSED:
            return
        if not self.remote_description_set:
            if len(self._pending_ice) >= self.max_pending_ice:
                logger.warning("ICE buffer for %s full, dropping candidate", self.remote)
                return
            self._pending_ice.append(candidate)
            return
        await self._add_candidate(candidate)

    async def on_local_candidate(self, candidate: Dict[str, Any]) -> None:
        """Forward a candidate gathered by our own backend."""
        if self.state == PeerState.CLOSED:
            return
        await self._send(self.remote, {"kind": KIND_ICE, "candidate": candidate})

    async def close(self) -> None:
        if self.state == PeerState.CLOSED:
            return
        self.state = PeerState.CLOSED
        self._pending_ice.clear()
        await self.backend.close()

    async def _remote_description_applied(self) -> None:
        self.remote_description_set = True
        pending, self._pending_ice = self._pending_ice, []
        for candidate in pending:
            await self._add_candidate(candidate)

    async def _add_candidate(self, candidate: Dict[str, Any]) -> None:
        try:
            await self.backend.add_ice_candidate(candidate)
        except Exception as e:
            # a single bad candidate must not tear down the handshake
            logger.warning("Rejected ICE candidate from %s: %s", self.remote, e)
