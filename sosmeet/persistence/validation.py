import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import List

from sosmeet.errors import ValidationError


class AlarmMode(str, Enum):
    NOTIFICATION = "NOTIFICATION"
    MESSAGE = "MESSAGE"
    CALL_LIKE = "CALL_LIKE"


class AlarmFieldPolicy(str, Enum):
    """What to do with client-supplied alarm fields the app does not know."""

    ACCEPT = "accept"      # store as given
    FALLBACK = "fallback"  # replace unknown values with the defaults
    REJECT = "reject"      # refuse the alarm code


KNOWN_SOUND_KEYS = ("sos", "ping", "soft")

DEFAULT_TITLE = "Alarm"
DEFAULT_COLOR_HEX = "#ff2d2d"
DEFAULT_SOUND_KEY = "sos"
DEFAULT_MODE = AlarmMode.NOTIFICATION.value

_COLOR_HEX = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class AlarmFields:
    """Caller-supplied content of a new alarm code."""

    title: str = DEFAULT_TITLE
    color_hex: str = DEFAULT_COLOR_HEX
    sound_key: str = DEFAULT_SOUND_KEY
    mode: str = DEFAULT_MODE
    message_text: str = ""


def is_known_mode(mode: str) -> bool:
    return mode in AlarmMode._value2member_map_


def is_valid_color(color_hex: str) -> bool:
    return bool(_COLOR_HEX.match(color_hex))


def alarm_field_errors(fields: AlarmFields) -> List[str]:
    """List every field that falls outside the known vocabulary."""
    errors = []
    if not is_known_mode(fields.mode):
        errors.append(f"Unknown alarm mode {fields.mode!r}.")
    if fields.sound_key not in KNOWN_SOUND_KEYS:
        errors.append(f"Unknown sound key {fields.sound_key!r}.")
    if not is_valid_color(fields.color_hex):
        errors.append(f"Invalid color {fields.color_hex!r}.")
    return errors


def apply_alarm_policy(fields: AlarmFields, policy: AlarmFieldPolicy) -> AlarmFields:
    """
    Run ``fields`` through ``policy``.

    ACCEPT returns the fields untouched, FALLBACK swaps each unknown value for
    its default, REJECT raises ValidationError naming every bad field.
    """
    if policy == AlarmFieldPolicy.ACCEPT:
        return fields

    if policy == AlarmFieldPolicy.REJECT:
        errors = alarm_field_errors(fields)
        if errors:
            raise ValidationError(" ".join(errors))
        return fields

    return replace(
        fields,
        mode=fields.mode if is_known_mode(fields.mode) else DEFAULT_MODE,
        sound_key=fields.sound_key if fields.sound_key in KNOWN_SOUND_KEYS else DEFAULT_SOUND_KEY,
        color_hex=fields.color_hex if is_valid_color(fields.color_hex) else DEFAULT_COLOR_HEX,
    )
