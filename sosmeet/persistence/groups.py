"""
Groups, their membership and the alarm-code catalog each group owns.

Everything here is plain in-memory state; the caller is expected to run all
mutations on one event loop. Every successful mutation returns the Group so
the caller can fan out ``group.to_wire()``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from sosmeet.errors import NotAMemberError, NotFoundError
from sosmeet.ids import new_id, now_ms
from sosmeet.persistence.identity import IdentityStore
from sosmeet.persistence.validation import (
    AlarmFieldPolicy,
    AlarmFields,
    AlarmMode,
    apply_alarm_policy,
)

logger = logging.getLogger(__name__)

DEFAULT_ALARM_CODES = (
    AlarmFields(title="SOS", color_hex="#ff2d2d", sound_key="sos",
                mode=AlarmMode.CALL_LIKE.value, message_text="I need help now."),
    AlarmFields(title="Pick Me Up", color_hex="#ffb020", sound_key="ping",
                mode=AlarmMode.MESSAGE.value, message_text="Can you pick me up?"),
    AlarmFields(title="Check In", color_hex="#2dd4ff", sound_key="soft",
                mode=AlarmMode.NOTIFICATION.value, message_text="Please check in with me."),
)


@dataclass(frozen=True)
class AlarmCode:
    id: str
    title: str
    color_hex: str
    sound_key: str
    mode: str
    message_text: str
    created_by: str
    created_at: int

    @classmethod
    def from_fields(cls, fields: AlarmFields, created_by: str) -> "AlarmCode":
        return cls(
            id=new_id("code_"),
            title=fields.title,
            color_hex=fields.color_hex,
            sound_key=fields.sound_key,
            mode=fields.mode,
            message_text=fields.message_text,
            created_by=created_by,
            created_at=now_ms(),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "colorHex": self.color_hex,
            "soundKey": self.sound_key,
            "mode": self.mode,
            "messageText": self.message_text,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }


@dataclass
class Group:
    id: str
    name: str
    owner: str
    members: Dict[str, None] = field(default_factory=dict)
    alarm_codes: Dict[str, AlarmCode] = field(default_factory=dict)

    def is_member(self, username: str) -> bool:
        return username in self.members

    def member_list(self) -> List[str]:
        return list(self.members)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "members": self.member_list(),
            "alarmCodes": [code.to_wire() for code in self.alarm_codes.values()],
        }


class GroupRegistry:
    def __init__(
        self,
        identity: IdentityStore,
        alarm_policy: AlarmFieldPolicy = AlarmFieldPolicy.ACCEPT,
    ) -> None:
        self.identity = identity
        self.alarm_policy = alarm_policy
        self._groups: Dict[str, Group] = {}

    def __len__(self) -> int:
        return len(self._groups)

    def get(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise NotFoundError(f"Unknown group {group_id}")
        return group

    def get_for_member(self, group_id: str, username: str) -> Group:
        """Look up a group, insisting ``username`` belongs to it."""
        group = self.get(group_id)
        if not group.is_member(username):
            raise NotAMemberError(group_id, username)
        return group

    def groups_for(self, username: str) -> List[Group]:
        return [g for g in self._groups.values() if g.is_member(username)]

    def create_group(self, owner: str, name: str) -> Group:
        self.identity.ensure_user(owner)
        group = Group(id=new_id("grp_"), name=name, owner=owner)
        group.members[owner] = None
        for fields in DEFAULT_ALARM_CODES:
            code = AlarmCode.from_fields(fields, created_by=owner)
            group.alarm_codes[code.id] = code

        self._groups[group.id] = group
        logger.info("Group %s (%s) created by %s", group.id, name, owner)
        return group

    def add_member(self, group_id: str, requester: str, member: str) -> Group:
        group = self.get_for_member(group_id, requester)
        self.identity.ensure_user(member)
        group.members[member] = None
        return group

    def create_alarm_code(self, group_id: str, requester: str, fields: AlarmFields) -> Group:
        group = self.get_for_member(group_id, requester)
        fields = apply_alarm_policy(fields, self.alarm_policy)
        code = AlarmCode.from_fields(fields, created_by=requester)
        group.alarm_codes[code.id] = code
        return group

    def get_alarm_code(self, group: Group, code_id: str) -> AlarmCode:
        code = group.alarm_codes.get(code_id)
        if code is None:
            raise NotFoundError(f"Unknown alarm code {code_id} in group {group.id}")
        return code
