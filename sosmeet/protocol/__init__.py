from .commands import COMMANDS, Command, decode_envelope, parse_command
from .events import encode

__all__ = ["COMMANDS", "Command", "decode_envelope", "encode", "parse_command"]
