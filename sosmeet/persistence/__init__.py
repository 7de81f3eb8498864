from .groups import AlarmCode, Group, GroupRegistry
from .identity import IdentityStore, User
from .store import Store
from .validation import AlarmFieldPolicy, AlarmFields, AlarmMode

__all__ = [
    "AlarmCode",
    "AlarmFieldPolicy",
    "AlarmFields",
    "AlarmMode",
    "Group",
    "GroupRegistry",
    "IdentityStore",
    "Store",
    "User",
]
