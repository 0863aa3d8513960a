"""Gateway opcode, intent and close-code tables.

See https://discord.com/developers/docs/topics/opcodes-and-status-codes
"""

from enum import IntEnum, IntFlag


class Opcode(IntEnum):
    """Tag identifying the purpose of a gateway frame."""

    DISPATCH = 0  # receive: an event was dispatched
    HEARTBEAT = 1  # send/receive: keep the connection alive
    IDENTIFY = 2  # send: start a new session
    PRESENCE_UPDATE = 3  # send
    VOICE_STATE_UPDATE = 4  # send
    RESUME = 6  # send
    RECONNECT = 7  # receive: reconnect and resume immediately
    REQUEST_GUILD_MEMBERS = 8  # send
    INVALID_SESSION = 9  # receive
    HELLO = 10  # receive: carries heartbeat_interval
    HEARTBEAT_ACK = 11  # receive
    REQUEST_SOUNDBOARD_SOUNDS = 31  # send

    @classmethod
    def lookup(cls, value: int) -> "Opcode | int":
        """Return the matching member, or ``value`` unchanged if unknown."""
        try:
            return cls(value)
        except ValueError:
            return value


# Opcodes a client may write.
SEND_OPCODES = frozenset(
    {
        Opcode.HEARTBEAT,
        Opcode.IDENTIFY,
        Opcode.PRESENCE_UPDATE,
        Opcode.VOICE_STATE_UPDATE,
        Opcode.RESUME,
        Opcode.REQUEST_GUILD_MEMBERS,
        Opcode.REQUEST_SOUNDBOARD_SOUNDS,
    }
)


class Intent(IntFlag):
    """Event categories requested at identify time; combine with ``|``."""

    GUILDS = 1 << 0
    GUILD_MEMBERS = 1 << 1
    GUILD_MODERATION = 1 << 2
    GUILD_EXPRESSIONS = 1 << 3
    GUILD_INTEGRATIONS = 1 << 4
    GUILD_WEBHOOKS = 1 << 5
    GUILD_INVITES = 1 << 6
    GUILD_VOICE_STATES = 1 << 7
    GUILD_PRESENCES = 1 << 8
    GUILD_MESSAGES = 1 << 9
    GUILD_MESSAGE_REACTIONS = 1 << 10
    GUILD_MESSAGE_TYPING = 1 << 11
    DIRECT_MESSAGES = 1 << 12
    DIRECT_MESSAGE_REACTIONS = 1 << 13
    DIRECT_MESSAGE_TYPING = 1 << 14
    MESSAGE_CONTENT = 1 << 15
    GUILD_SCHEDULED_EVENTS = 1 << 16
    AUTO_MODERATION_CONFIGURATION = 1 << 20
    AUTO_MODERATION_EXECUTION = 1 << 21
    GUILD_MESSAGE_POLLS = 1 << 24
    DIRECT_MESSAGE_POLLS = 1 << 25


class CloseCode(IntEnum):
    """Gateway close event codes."""

    UNKNOWN_ERROR = 4000
    UNKNOWN_OPCODE = 4001
    DECODE_ERROR = 4002
    NOT_AUTHENTICATED = 4003
    AUTHENTICATION_FAILED = 4004
    ALREADY_AUTHENTICATED = 4005
    INVALID_SEQ = 4007
    RATE_LIMITED = 4008
    SESSION_TIMED_OUT = 4009
    INVALID_SHARD = 4010
    SHARDING_REQUIRED = 4011
    INVALID_API_VERSION = 4012
    INVALID_INTENTS = 4013
    DISALLOWED_INTENTS = 4014

    @property
    def reconnect(self) -> bool:
        return _RECONNECT_POLICY[self]


_RECONNECT_POLICY: dict[CloseCode, bool] = {
    CloseCode.UNKNOWN_ERROR: True,
    CloseCode.UNKNOWN_OPCODE: True,
    CloseCode.DECODE_ERROR: True,
    CloseCode.NOT_AUTHENTICATED: True,
    CloseCode.AUTHENTICATION_FAILED: False,
    CloseCode.ALREADY_AUTHENTICATED: True,
    CloseCode.INVALID_SEQ: True,
    CloseCode.RATE_LIMITED: True,
    CloseCode.SESSION_TIMED_OUT: True,
    CloseCode.INVALID_SHARD: False,
    CloseCode.SHARDING_REQUIRED: False,
    CloseCode.INVALID_API_VERSION: False,
    CloseCode.INVALID_INTENTS: False,
    CloseCode.DISALLOWED_INTENTS: False,
}

# Client close codes that end the session (the bot appears offline).
# Any other code leaves the session eligible for resume.
OFFLINE_CLOSE_CODES = frozenset({1000, 1001})


def should_reconnect(code: int) -> bool | None:
    """Look up the reconnect policy for a server close code.

    Returns ``None`` for codes outside the gateway table; the caller
    decides what to do with those.
    """
    try:
        return CloseCode(code).reconnect
    except ValueError:
        return None
