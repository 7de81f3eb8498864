from .alarms import AlarmEngine, AlarmEvent
from .broadcast import BroadcastRouter
from .dispatcher import Dispatcher
from .session import Connection, Session, SessionDirectory
from .signaling import SignalingRelay
from .transport import RelayServer

__all__ = [
    "AlarmEngine",
    "AlarmEvent",
    "BroadcastRouter",
    "Connection",
    "Dispatcher",
    "RelayServer",
    "Session",
    "SessionDirectory",
    "SignalingRelay",
]
