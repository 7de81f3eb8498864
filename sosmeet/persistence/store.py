from __future__ import annotations

from typing import Any, Dict

from sosmeet.persistence.groups import GroupRegistry
from sosmeet.persistence.identity import IdentityStore
from sosmeet.persistence.validation import AlarmFieldPolicy


class Store:
    """
    Owns every piece of shared social state: users, friendships and groups.

    One Store is built per server and handed to the dispatcher, which is the
    only thing that mutates it. Nothing survives a restart.
    """

    def __init__(self, alarm_policy: AlarmFieldPolicy = AlarmFieldPolicy.ACCEPT) -> None:
        self.identity = IdentityStore()
        self.groups = GroupRegistry(self.identity, alarm_policy=alarm_policy)

    def snapshot_for(self, username: str) -> Dict[str, Any]:
        """Friends and groups of ``username`` in wire shape (the login state)."""
        return {
            "me": username,
            "friends": self.identity.friends_of(username),
            "groups": [g.to_wire() for g in self.groups.groups_for(username)],
        }
