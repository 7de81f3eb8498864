from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from sosmeet.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class User:
    username: str
    # dict keys keep insertion order; values unused
    friends: Dict[str, None] = field(default_factory=dict)

    def friend_list(self) -> List[str]:
        return list(self.friends)


class IdentityStore:
    """In-memory users and the symmetric friend graph. Append-only."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}

    def __contains__(self, username: str) -> bool:
        return username in self._users

    def __len__(self) -> int:
        return len(self._users)

    def ensure_user(self, username: str) -> User:
        user = self._users.get(username)
        if user is None:
            user = User(username=username)
            self._users[username] = user
            logger.debug("Created user %s", username)
        return user

    def get(self, username: str) -> User | None:
        return self._users.get(username)

    def friends_of(self, username: str) -> List[str]:
        user = self._users.get(username)
        return user.friend_list() if user else []

    def add_friend(self, a: str, b: str) -> Tuple[User, User]:
        """Link ``a`` and ``b`` both ways. Repeating the call changes nothing."""
        if a == b:
            raise ValidationError("You cannot add yourself as a friend.")

        user_a = self.ensure_user(a)
        user_b = self.ensure_user(b)
        user_a.friends[b] = None
        user_b.friends[a] = None
        return user_a, user_b
