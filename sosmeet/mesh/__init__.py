from .call import MeshCall
from .peer import PeerBackend, PeerHandshake, PeerState

__all__ = ["MeshCall", "PeerBackend", "PeerHandshake", "PeerState"]
