"""Wire framing for the gateway.

Every frame is a JSON object ``{"op": int, "s": int|null, "t": str|null,
"d": ...}``. This module decodes that envelope, serializes the Identify
payload, and formats heartbeats into a fixed-capacity buffer whose size is
validated when the buffer is built.
"""

import json
import sys
from dataclasses import asdict, dataclass, field
from typing import Any

from ..mechanism import EnvelopeDecodeError
from .opcodes import Opcode

LIBRARY_NAME = "rxcord"

HEARTBEAT_PREFIX = b'{"op":1,"d":'
HEARTBEAT_SUFFIX = b"}"
NULL_LITERAL = b"null"

# Bit width of the sequence numbers the default buffer is sized for.
SEQUENCE_BITS = 64


@dataclass(frozen=True)
class RawMessage:
    """One message as read from the transport, before any decoding."""

    data: str | bytes

    @property
    def is_text(self) -> bool:
        return isinstance(self.data, str)

    @property
    def kind(self) -> str:
        return "text" if self.is_text else "binary"


@dataclass(frozen=True)
class Frame:
    """A decoded gateway envelope.

    ``raw`` keeps the original text so later stages can parse the parts of
    ``d`` they care about.
    """

    op: int
    s: int | None = None
    t: str | None = None
    d: Any = None
    raw: str = field(default="", repr=False)

    @property
    def opcode(self) -> Opcode | int:
        return Opcode.lookup(self.op)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def decode_envelope(text: str) -> Frame:
    """Parse the generic ``{op, s, t, d}`` envelope.

    Raises:
        EnvelopeDecodeError: The text is not a JSON object or a field has
            the wrong type.
    """
    try:
        obj = json.loads(text)
    except (ValueError, TypeError) as e:
        raise EnvelopeDecodeError(
            f"invalid JSON: {e}", source="EnvelopeDecode"
        ) from e

    if not isinstance(obj, dict):
        raise EnvelopeDecodeError(
            f"expected a JSON object, got {type(obj).__name__}",
            source="EnvelopeDecode",
        )

    op = obj.get("op")
    if not _is_int(op):
        raise EnvelopeDecodeError(f"missing or non-integer op: {op!r}", source="EnvelopeDecode")

    s = obj.get("s")
    if s is not None and (not _is_int(s) or s < 0):
        raise EnvelopeDecodeError(f"invalid sequence: {s!r}", source="EnvelopeDecode")

    t = obj.get("t")
    if t is not None and not isinstance(t, str):
        raise EnvelopeDecodeError(f"invalid event type: {t!r}", source="EnvelopeDecode")

    return Frame(op=op, s=s, t=t, d=obj.get("d"), raw=text)


def parse_heartbeat_interval(frame: Frame) -> int:
    """Extract ``d.heartbeat_interval`` (milliseconds) from a hello frame."""
    data = frame.d
    interval = data.get("heartbeat_interval") if isinstance(data, dict) else None
    if not _is_int(interval) or interval <= 0:
        raise EnvelopeDecodeError(
            f"hello without a positive heartbeat_interval: {data!r}",
            source="HeartbeatIntercept",
        )
    return interval


def encode_frame(op: int, d: Any) -> str:
    """Serialize an outbound ``{op, d}`` frame as compact JSON."""
    return json.dumps({"op": int(op), "d": d}, separators=(",", ":"))


@dataclass(frozen=True)
class IdentifyProperties:
    """Connection properties sent with Identify."""

    os: str = field(default_factory=lambda: sys.platform)
    browser: str = LIBRARY_NAME
    device: str = LIBRARY_NAME


@dataclass(frozen=True)
class Identify:
    """Gateway Identify structure.

    See: https://discord.com/developers/docs/events/gateway-events#identify-identify-structure
    """

    token: str = field(repr=False)
    intents: int = 0
    properties: IdentifyProperties = field(default_factory=IdentifyProperties)

    def __post_init__(self):
        if not 0 <= int(self.intents) < 1 << 32:
            raise ValueError(f"intents must fit in 32 bits, got {int(self.intents)}")

    def payload(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "intents": int(self.intents),
            "properties": asdict(self.properties),
        }

    def serialize(self) -> str:
        return encode_frame(Opcode.IDENTIFY, self.payload())


def max_digits(bits: int) -> int:
    """Decimal width of the largest unsigned integer of ``bits`` bits."""
    if bits <= 0:
        raise ValueError(f"bits must be positive, got {bits}")
    return len(str((1 << bits) - 1))


class HeartbeatBuffer:
    """Reusable buffer holding ``{"op":1,"d":<sequence>}``.

    The capacity is the prefix, ``digits`` characters for the sequence and
    the closing brace. A nullable buffer must have room for the ``null``
    literal; that is checked here rather than when formatting.

    Not thread-safe; the session formats under its write lock.
    """

    def __init__(self, digits: int | None = None, nullable: bool = True):
        if digits is None:
            digits = max_digits(SEQUENCE_BITS)
        if digits <= 0:
            raise ValueError(f"heartbeat buffer needs at least one digit, got {digits}")
        if nullable and digits < len(NULL_LITERAL):
            raise ValueError(
                f"heartbeat buffer of {digits} digits is too small for a "
                f"nullable sequence (needs at least {len(NULL_LITERAL)})"
            )
        self.digits = digits
        self.nullable = nullable
        self.size = len(HEARTBEAT_PREFIX) + digits + len(HEARTBEAT_SUFFIX)
        self._data = bytearray(self.size)
        self._data[: len(HEARTBEAT_PREFIX)] = HEARTBEAT_PREFIX

    @classmethod
    def for_bits(cls, bits: int = SEQUENCE_BITS, nullable: bool = True) -> "HeartbeatBuffer":
        """Build a buffer wide enough for any ``bits``-bit unsigned sequence."""
        return cls(max_digits(bits), nullable=nullable)

    def format(self, value: int | None) -> str:
        """Write ``value`` into the buffer and return the complete message."""
        if value is None:
            if not self.nullable:
                raise TypeError("buffer was built for a non-nullable sequence")
            body = NULL_LITERAL
        else:
            if value < 0:
                raise ValueError(f"sequence must be non-negative, got {value}")
            body = str(value).encode("ascii")
        if len(body) > self.digits:
            raise OverflowError(
                f"sequence {value} needs {len(body)} digits, buffer holds {self.digits}"
            )
        start = len(HEARTBEAT_PREFIX)
        end = start + len(body)
        self._data[start:end] = body
        self._data[end : end + len(HEARTBEAT_SUFFIX)] = HEARTBEAT_SUFFIX
        return self._data[: end + len(HEARTBEAT_SUFFIX)].decode("ascii")
