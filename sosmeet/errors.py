from __future__ import annotations


class RelayError(Exception):
    """Base class for every error the relay turns into a reply or a drop."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class DecodeError(RelayError):
    """Frame is not a JSON object carrying a string ``type``."""


class UnknownCommandError(RelayError):
    def __init__(self, command_type: str) -> None:
        super().__init__(f"Unknown command type: {command_type}")
        self.command_type = command_type


class ValidationError(RelayError):
    """Missing or malformed field. Always answered with an error event."""


class AuthorizationError(RelayError):
    pass


class NotLoggedInError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("You must login first.")


class NotAMemberError(AuthorizationError):
    def __init__(self, group_id: str, username: str) -> None:
        super().__init__("Not a member of this group.")
        self.group_id = group_id
        self.username = username


class NotFoundError(RelayError):
    """Unknown group or alarm code id."""
