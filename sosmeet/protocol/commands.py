"""
Client -> server commands.

One pydantic model per command tag. Incoming frames are looked up by their
``type`` in COMMANDS and validated against that model only, so a frame either
becomes exactly one typed command or raises one of the relay errors:

- DecodeError          not a JSON object with a string ``type``
- UnknownCommandError  ``type`` is not a command tag
- ValidationError      fields missing or malformed

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Dict, Literal, Optional, Type, Union

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from sosmeet.errors import DecodeError, UnknownCommandError, ValidationError
from sosmeet.persistence.validation import (
    DEFAULT_COLOR_HEX,
    DEFAULT_MODE,
    DEFAULT_SOUND_KEY,
    DEFAULT_TITLE,
    AlarmFields,
)
from sosmeet.protocol.types import (
    ADD_FRIEND,
    ADD_MEMBER,
    CALL_PRESENCE,
    CREATE_ALARM_CODE,
    CREATE_GROUP,
    LOGIN,
    MIN_USERNAME_LENGTH,
    TRIGGER_ALARM,
    WEBRTC,
)


def normalize_username(value: str) -> str:
    value = value.strip().lower()
    if len(value) < MIN_USERNAME_LENGTH:
        raise ValueError(f"Username must be at least {MIN_USERNAME_LENGTH} characters.")
    return value


def _required(value: str) -> str:
    if not value:
        raise ValueError("must not be empty")
    return value


Username = Annotated[str, AfterValidator(normalize_username)]
RequiredText = Annotated[str, AfterValidator(_required)]
# signal recipients are only normalised; an unknown name is a silent drop
Recipient = Annotated[str, AfterValidator(str.lower)]


class Command(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Login(Command):
    type: Literal["login"] = LOGIN
    username: Username


class AddFriend(Command):
    type: Literal["add_friend"] = ADD_FRIEND
    friend: Username


class CreateGroup(Command):
    type: Literal["create_group"] = CREATE_GROUP
    name: RequiredText


class AddMember(Command):
    type: Literal["add_member"] = ADD_MEMBER
    group_id: RequiredText
    member: Username


class CreateAlarmCode(Command):
    type: Literal["create_alarm_code"] = CREATE_ALARM_CODE
    group_id: RequiredText
    title: Optional[str] = None
    mode: Optional[str] = None
    color_hex: Optional[str] = None
    sound_key: Optional[str] = None
    message_text: Optional[str] = None

    def to_fields(self) -> AlarmFields:
        # empty strings fall back the same way missing fields do
        return AlarmFields(
            title=self.title or DEFAULT_TITLE,
            color_hex=self.color_hex or DEFAULT_COLOR_HEX,
            sound_key=self.sound_key or DEFAULT_SOUND_KEY,
            mode=self.mode or DEFAULT_MODE,
            message_text=self.message_text or "",
        )


class TriggerAlarm(Command):
    type: Literal["trigger_alarm"] = TRIGGER_ALARM
    group_id: RequiredText
    code_id: RequiredText
    message_override: Optional[str] = None


class CallPresence(Command):
    type: Literal["call_presence"] = CALL_PRESENCE
    group_id: RequiredText


class WebRTC(Command):
    type: Literal["webrtc"] = WEBRTC
    group_id: Optional[str] = None
    to: Recipient
    payload: Any


AnyCommand = Union[
    Login, AddFriend, CreateGroup, AddMember, CreateAlarmCode,
    TriggerAlarm, CallPresence, WebRTC,
]

COMMANDS: Dict[str, Type[Command]] = {
    LOGIN: Login,
    ADD_FRIEND: AddFriend,
    CREATE_GROUP: CreateGroup,
    ADD_MEMBER: AddMember,
    CREATE_ALARM_CODE: CreateAlarmCode,
    TRIGGER_ALARM: TriggerAlarm,
    CALL_PRESENCE: CallPresence,
    WEBRTC: WebRTC,
}


def decode_envelope(raw: Union[str, bytes]) -> Dict[str, Any]:
    try:
        obj = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise DecodeError("envelope is not an object")
    if not isinstance(obj.get("type"), str):
        raise DecodeError("envelope has no string type")
    return obj


def describe(exc: PydanticValidationError) -> str:
    """First pydantic error as one readable line, e.g. ``groupId: Field required``."""
    err = exc.errors()[0]
    msg = err["msg"]
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(part) for part in err["loc"])
    # username problems already read as a sentence
    if msg.startswith("Username"):
        return msg
    return f"{loc}: {msg}" if loc else msg


def parse_command(envelope: Dict[str, Any]) -> AnyCommand:
    command_type = envelope["type"]
    model = COMMANDS.get(command_type)
    if model is None:
        raise UnknownCommandError(command_type)
    try:
        return model.model_validate(envelope)
    except PydanticValidationError as exc:
        raise ValidationError(describe(exc)) from exc
