"""
Per-connection protocol state machine.

    UNAUTHENTICATED --login--> AUTHENTICATED   (until disconnect)
    AUTHENTICATED --newer login elsewhere--> UNAUTHENTICATED

Every frame goes through ``Dispatcher.dispatch``. Nothing on that path awaits,
so a command is applied to the store and fanned out before the event loop can
run anything from another session: the loop itself is the serialization point.

Error policy:
- bad JSON / no type          dropped, connection stays open
- unknown type                error reply (or dropped if configured)
- not logged in               error reply
- invalid fields              error reply
- not a member / unknown id   dropped (or error reply if configured)
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Type, Union

from sosmeet.errors import (
    AuthorizationError,
    DecodeError,
    NotFoundError,
    NotLoggedInError,
    UnknownCommandError,
    ValidationError,
)
from sosmeet.persistence.store import Store
from sosmeet.protocol.commands import (
    COMMANDS,
    AddFriend,
    AddMember,
    CallPresence,
    Command,
    CreateAlarmCode,
    CreateGroup,
    Login,
    TriggerAlarm,
    WebRTC,
    decode_envelope,
    parse_command,
)
from sosmeet.protocol.events import (
    ev_call_presence,
    ev_error,
    ev_friends_updated,
    ev_group_created,
    ev_group_updated,
    ev_state,
)
from sosmeet.protocol.types import LOGIN, MSG_INTERNAL
from sosmeet.server.alarms import AlarmEngine
from sosmeet.server.broadcast import BroadcastRouter
from sosmeet.server.session import Session, SessionDirectory
from sosmeet.server.signaling import SignalingRelay

logger = logging.getLogger(__name__)

Handler = Callable[[Session, Command], None]


class Dispatcher:
    def __init__(
        self,
        store: Store,
        directory: SessionDirectory,
        *,
        reply_on_unauthorized: bool = False,
        reject_unknown_commands: bool = True,
    ) -> None:
        self.store = store
        self.directory = directory
        self.reply_on_unauthorized = reply_on_unauthorized
        self.reject_unknown_commands = reject_unknown_commands

        self.router = BroadcastRouter(directory)
        self.alarms = AlarmEngine(store.groups, self.router)
        self.signaling = SignalingRelay(store.groups, directory, self.router)

        self.routes: Dict[Type[Command], Handler] = {
            Login: self._login,
            AddFriend: self._add_friend,
            CreateGroup: self._create_group,
            AddMember: self._add_member,
            CreateAlarmCode: self._create_alarm_code,
            TriggerAlarm: self._trigger_alarm,
            CallPresence: self._call_presence,
            WebRTC: self._webrtc,
        }

    @classmethod
    def from_settings(cls, settings) -> "Dispatcher":
        return cls(
            Store(alarm_policy=settings.alarm_field_policy),
            SessionDirectory(),
            reply_on_unauthorized=settings.reply_on_unauthorized,
            reject_unknown_commands=settings.reject_unknown_commands,
        )

    # ---- connection lifecycle -------------------------------------------------

    def connect(self, session: Session) -> None:
        logger.info("Session %s connected", session.session_id)

    def disconnect(self, session: Session) -> None:
        if session.username and self.directory.unbind(session.username, session.connection):
            logger.info("User %s went offline", session.username)
        logger.info("Session %s closed", session.tag())

    # ---- frames ---------------------------------------------------------------

    def dispatch(self, session: Session, raw: Union[str, bytes]) -> None:
        try:
            envelope = decode_envelope(raw)
        except DecodeError as exc:
            logger.debug("Discarding frame from %s: %s", session.tag(), exc)
            return

        try:
            self._route(session, envelope)
        except (ValidationError, NotLoggedInError) as exc:
            self._reply_error(session, exc.message)
        except UnknownCommandError as exc:
            if self.reject_unknown_commands:
                self._reply_error(session, exc.message)
            else:
                logger.debug("Ignoring unknown command %r from %s", exc.command_type, session.tag())
        except (AuthorizationError, NotFoundError) as exc:
            logger.debug("Dropping %s from %s: %s", envelope["type"], session.tag(), exc.message)
            if self.reply_on_unauthorized:
                self._reply_error(session, exc.message)
        except Exception:
            logger.exception("Handler error for %s from %s", envelope["type"], session.tag())
            self._reply_error(session, MSG_INTERNAL)

    def _route(self, session: Session, envelope: dict) -> None:
        command_type = envelope["type"]
        if command_type not in COMMANDS:
            raise UnknownCommandError(command_type)
        if session.authenticated and self.directory.lookup(session.username) is not session.connection:
            # a newer login for this username took over
            logger.info("Session %s superseded, treating as logged out", session.tag())
            session.username = None
        if not session.authenticated and command_type != LOGIN:
            raise NotLoggedInError()

        command = parse_command(envelope)
        self.routes[type(command)](session, command)

    def _reply_error(self, session: Session, message: str) -> None:
        self.router.reply(session.connection, ev_error(message))

    # ---- handlers -------------------------------------------------------------

    def _login(self, session: Session, cmd: Login) -> None:
        if session.authenticated and session.username != cmd.username:
            raise ValidationError(f"Already logged in as {session.username}.")

        if not session.authenticated:
            session.username = cmd.username
            self.store.identity.ensure_user(cmd.username)
            self.directory.bind(cmd.username, session.connection)
            logger.info("Session %s logged in as %s", session.session_id, cmd.username)

        snapshot = self.store.snapshot_for(cmd.username)
        self.router.reply(session.connection, ev_state(**snapshot))

    def _add_friend(self, session: Session, cmd: AddFriend) -> None:
        me = session.username
        self.store.identity.add_friend(me, cmd.friend)
        self.router.deliver([me, cmd.friend], ev_friends_updated(me, cmd.friend))

    def _create_group(self, session: Session, cmd: CreateGroup) -> None:
        group = self.store.groups.create_group(session.username, cmd.name)
        self.router.reply(session.connection, ev_group_created(group.to_wire()))

    def _add_member(self, session: Session, cmd: AddMember) -> None:
        group = self.store.groups.add_member(cmd.group_id, session.username, cmd.member)
        self.router.deliver(group.member_list(), ev_group_updated(group.to_wire()))

    def _create_alarm_code(self, session: Session, cmd: CreateAlarmCode) -> None:
        group = self.store.groups.create_alarm_code(cmd.group_id, session.username, cmd.to_fields())
        self.router.deliver(group.member_list(), ev_group_updated(group.to_wire()))

    def _trigger_alarm(self, session: Session, cmd: TriggerAlarm) -> None:
        self.alarms.trigger_alarm(cmd.group_id, cmd.code_id, session.username, cmd.message_override)

    def _call_presence(self, session: Session, cmd: CallPresence) -> None:
        online = self.signaling.presence(cmd.group_id, session.username)
        self.router.reply(session.connection, ev_call_presence(cmd.group_id, online))

    def _webrtc(self, session: Session, cmd: WebRTC) -> None:
        self.signaling.relay(session.username, cmd.to, cmd.group_id, cmd.payload)
