import pytest

from sosmeet.mesh import MeshCall, PeerHandshake, PeerState


class FakeBackend:
    """Records every call made by a handshake."""

    def __init__(self, name="peer", reject_candidates=False):
        self.name = name
        self.calls = []
        self.candidates = []
        self.reject_candidates = reject_candidates

    async def create_offer(self):
        self.calls.append("create_offer")
        return {"type": "offer", "sdp": f"offer-from-{self.name}"}

    async def create_answer(self):
        self.calls.append("create_answer")
        return {"type": "answer", "sdp": f"answer-from-{self.name}"}

    async def set_local_description(self, sdp):
        self.calls.append(("local", sdp["type"]))

    async def set_remote_description(self, sdp):
        self.calls.append(("remote", sdp["type"]))

    async def add_ice_candidate(self, candidate):
        if self.reject_candidates:
            raise ValueError("bad candidate")
        self.candidates.append(candidate)

    async def close(self):
        self.calls.append("close")


class Outbox:
    def __init__(self):
        self.sent = []

    async def __call__(self, *args):
        self.sent.append(args)


OFFER = {"type": "offer", "sdp": "remote-offer"}
ANSWER = {"type": "answer", "sdp": "remote-answer"}


def handshake(local="alice", remote="bob", **backend_kwargs):
    outbox = Outbox()
    backend = FakeBackend(local, **backend_kwargs)
    return PeerHandshake(local, remote, backend, outbox), backend, outbox


async def test_start_sends_offer():
    peer, backend, outbox = handshake()
    await peer.start()
    assert peer.state is PeerState.OFFER_SENT
    assert backend.calls == ["create_offer", ("local", "offer")]
    assert outbox.sent == [("bob", {"kind": "offer", "sdp": {"type": "offer", "sdp": "offer-from-alice"}})]


async def test_start_twice_sends_one_offer():
    peer, _, outbox = handshake()
    await peer.start()
    await peer.start()
    assert len(outbox.sent) == 1


async def test_offer_is_answered():
    peer, backend, outbox = handshake()
    await peer.on_offer(OFFER)
    assert peer.state is PeerState.CONNECTED
    assert backend.calls == [("remote", "offer"), "create_answer", ("local", "answer")]
    assert outbox.sent[-1][1]["kind"] == "answer"


async def test_answer_completes_dialing():
    peer, backend, _ = handshake()
    await peer.start()
    await peer.on_answer(ANSWER)
    assert peer.state is PeerState.CONNECTED
    assert backend.calls[-1] == ("remote", "answer")


async def test_stray_answer_is_ignored():
    peer, backend, _ = handshake()
    await peer.on_answer(ANSWER)
    assert peer.state is PeerState.NEW
    assert backend.calls == []


async def test_early_candidates_wait_for_remote_description():
    peer, backend, _ = handshake()
    await peer.start()
    await peer.on_ice({"candidate": "c1"})
    await peer.on_ice({"candidate": "c2"})
    assert backend.candidates == []
    assert peer.pending_ice == 2

    await peer.on_answer(ANSWER)
    assert backend.candidates == [{"candidate": "c1"}, {"candidate": "c2"}]
    assert peer.pending_ice == 0

    await peer.on_ice({"candidate": "c3"})
    assert backend.candidates[-1] == {"candidate": "c3"}


async def test_candidate_buffer_is_bounded():
    outbox = Outbox()
    peer = PeerHandshake("alice", "bob", FakeBackend(), outbox, max_pending_ice=2)
    for n in range(5):
        await peer.on_ice({"candidate": n})
    assert peer.pending_ice == 2


async def test_bad_candidate_does_not_break_the_handshake():
    peer, _, _ = handshake(reject_candidates=True)
    await peer.on_offer(OFFER)
    await peer.on_ice({"candidate": "garbage"})
    assert peer.state is PeerState.CONNECTED


async def test_local_candidates_are_forwarded():
    peer, _, outbox = handshake()
    await peer.on_local_candidate({"candidate": "mine"})
    assert outbox.sent == [("bob", {"kind": "ice", "candidate": {"candidate": "mine"}})]


async def test_glare_polite_side_answers():
    # alice < bob, so alice yields
    peer, _, outbox = handshake("alice", "bob")
    await peer.start()
    await peer.on_offer(OFFER)
    assert peer.state is PeerState.CONNECTED
    assert outbox.sent[-1][1]["kind"] == "answer"


async def test_glare_impolite_side_keeps_its_offer():
    peer, _, outbox = handshake("bob", "alice")
    await peer.start()
    await peer.on_offer(OFFER)
    assert peer.state is PeerState.OFFER_SENT
    assert [p["kind"] for _, p in outbox.sent] == ["offer"]

    await peer.on_answer(ANSWER)
    assert peer.state is PeerState.CONNECTED


async def test_close_is_idempotent():
    peer, backend, _ = handshake()
    await peer.on_ice({"candidate": "c1"})
    await peer.close()
    await peer.close()
    assert peer.state is PeerState.CLOSED
    assert peer.pending_ice == 0
    assert backend.calls.count("close") == 1


# ---- MeshCall -----------------------------------------------------------------


@pytest.fixture
def call():
    outbox = Outbox()
    backends = {}

    def factory(username):
        backends[username] = FakeBackend("alice")
        return backends[username]

    mesh = MeshCall("alice", "grp_1", outbox, factory)
    return mesh, outbox, backends


def commands(outbox):
    return [args[0] for args in outbox.sent]


async def test_join_asks_for_presence(call):
    mesh, outbox, _ = call
    await mesh.join()
    await mesh.join()
    assert commands(outbox) == [{"type": "call_presence", "groupId": "grp_1"}]


async def test_presence_dials_everyone_but_me(call):
    mesh, outbox, backends = call
    await mesh.join()
    await mesh.handle({"type": "call_presence", "groupId": "grp_1",
                       "onlineMembers": ["alice", "bob", "carol"]})

    assert sorted(mesh.peers) == ["bob", "carol"]
    assert set(backends) == {"bob", "carol"}
    offers = commands(outbox)[1:]
    assert [(c["type"], c["to"], c["groupId"], c["payload"]["kind"]) for c in offers] == [
        ("webrtc", "bob", "grp_1", "offer"),
        ("webrtc", "carol", "grp_1", "offer"),
    ]


async def test_known_peers_are_not_redialed(call):
    mesh, outbox, _ = call
    await mesh.join()
    event = {"type": "call_presence", "groupId": "grp_1", "onlineMembers": ["alice", "bob"]}
    await mesh.handle(event)
    await mesh.handle(event)
    assert len(commands(outbox)) == 2


async def test_presence_for_other_group_is_ignored(call):
    mesh, _, _ = call
    await mesh.join()
    await mesh.handle({"type": "call_presence", "groupId": "grp_2", "onlineMembers": ["bob"]})
    assert mesh.peers == {}


async def test_incoming_offer_is_answered_through_the_relay(call):
    mesh, outbox, _ = call
    await mesh.join()
    await mesh.handle({"type": "webrtc", "from": "carol", "groupId": "grp_1",
                       "payload": {"kind": "offer", "sdp": OFFER}})

    assert mesh.peers["carol"].state is PeerState.CONNECTED
    reply = commands(outbox)[-1]
    assert reply["to"] == "carol"
    assert reply["payload"]["kind"] == "answer"


async def test_rejoining_peer_gets_a_fresh_handshake(call):
    mesh, outbox, backends = call
    await mesh.join()
    offer = {"type": "webrtc", "from": "carol", "groupId": "grp_1",
             "payload": {"kind": "offer", "sdp": OFFER}}
    await mesh.handle(offer)
    first = mesh.peers["carol"]
    first_backend = backends["carol"]

    # carol left and dialed again; she sends a brand new offer
    await mesh.handle(offer)

    assert mesh.peers["carol"] is not first
    assert mesh.peers["carol"].state is PeerState.CONNECTED
    assert "close" in first_backend.calls
    answers = [c for c in commands(outbox) if c.get("type") == "webrtc"]
    assert [(c["to"], c["payload"]["kind"]) for c in answers] == [("carol", "answer"), ("carol", "answer")]


async def test_rejoin_between_two_calls():
    links = {}

    def make(me):
        async def send(command):
            if command["type"] == "webrtc":
                event = {"type": "webrtc", "from": me, "groupId": command["groupId"],
                         "payload": command["payload"]}
                await links[command["to"]].handle(event)
        return MeshCall(me, "grp_1", send, lambda username: FakeBackend(me))

    alice, bob = make("alice"), make("bob")
    links.update(alice=alice, bob=bob)
    presence = {"type": "call_presence", "groupId": "grp_1", "onlineMembers": ["alice", "bob"]}

    await bob.join()
    await alice.join()
    await alice.handle(presence)
    assert alice.peers["bob"].state is PeerState.CONNECTED
    assert bob.peers["alice"].state is PeerState.CONNECTED

    await alice.leave()
    await alice.join()
    await alice.handle(presence)

    assert alice.peers["bob"].state is PeerState.CONNECTED
    assert bob.peers["alice"].state is PeerState.CONNECTED


async def test_non_object_payload_is_ignored(call):
    mesh, _, _ = call
    await mesh.join()
    await mesh.handle({"type": "webrtc", "from": "carol", "groupId": "grp_1", "payload": "offer"})
    assert mesh.peers == {}


async def test_signals_are_ignored_outside_a_call(call):
    mesh, outbox, _ = call
    await mesh.handle({"type": "webrtc", "from": "carol", "groupId": "grp_1",
                       "payload": {"kind": "offer", "sdp": OFFER}})
    assert mesh.peers == {}
    assert outbox.sent == []


async def test_answer_from_stranger_is_ignored(call):
    mesh, _, _ = call
    await mesh.join()
    await mesh.handle({"type": "webrtc", "from": "dave", "groupId": "grp_1",
                       "payload": {"kind": "answer", "sdp": ANSWER}})
    assert mesh.peers == {}


async def test_leave_closes_every_peer(call):
    mesh, _, backends = call
    await mesh.join()
    await mesh.handle({"type": "call_presence", "groupId": "grp_1",
                       "onlineMembers": ["bob", "carol"]})
    await mesh.leave()

    assert mesh.peers == {}
    assert not mesh.active
    assert all("close" in b.calls for b in backends.values())


async def test_drop_forgets_one_peer(call):
    mesh, _, backends = call
    await mesh.join()
    await mesh.handle({"type": "call_presence", "groupId": "grp_1",
                       "onlineMembers": ["bob", "carol"]})
    await mesh.drop("bob")
    assert list(mesh.peers) == ["carol"]
    assert "close" in backends["bob"].calls
