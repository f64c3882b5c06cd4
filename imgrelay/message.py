"""Fixed-size messages exchanged between the image sender and receiver."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Iterable, Iterator

MAX_PAYLOAD_SIZE = 1024

# type, packet number, last-packet flag, 4 padding bytes, payload size, payload
_WIRE = struct.Struct(f"<3i4xQ{MAX_PAYLOAD_SIZE}s")
MESSAGE_SIZE = _WIRE.size

_CHECKSUM = struct.Struct("<I")
_MATCH = "MATCH"
_MISMATCH = "MISMATCH"


class MessageType(enum.IntEnum):
    """Kind of message carried on a queue."""

    PACKET_DATA = 0
    CHECKSUM_DATA = 1
    RESULT_DATA = 2


@dataclass(frozen=True)
class Message:
    """One message: an image packet, a checksum or a comparison result."""

    type: MessageType
    packet_no: int = 0
    is_last_packet: bool = False
    payload: bytes = b""

    def __post_init__(self):
        object.__setattr__(self, "type", MessageType(self.type))
        object.__setattr__(self, "is_last_packet", bool(self.is_last_packet))
        payload = bytes(self.payload)
        if len(payload) > MAX_PAYLOAD_SIZE:
            raise ValueError(
                f"payload of {len(payload)} bytes exceeds {MAX_PAYLOAD_SIZE} bytes"
            )
        object.__setattr__(self, "payload", payload)

    @property
    def size(self):
        """Number of payload bytes in use."""
        return len(self.payload)

    def pack(self):
        """Encode the message into its fixed-size wire form."""
        try:
            return _WIRE.pack(
                int(self.type),
                self.packet_no,
                int(self.is_last_packet),
                self.size,
                self.payload,
            )
        except struct.error as exc:
            raise ValueError(f"cannot encode message: {exc}") from exc

    @classmethod
    def unpack(cls, raw):
        """Decode a message from its fixed-size wire form."""
        raw = bytes(raw)
        if len(raw) != MESSAGE_SIZE:
            raise ValueError(f"expected {MESSAGE_SIZE} bytes, got {len(raw)}")
        type_code, packet_no, is_last, size, payload = _WIRE.unpack(raw)
        if size > MAX_PAYLOAD_SIZE:
            raise ValueError(f"declared payload size {size} exceeds {MAX_PAYLOAD_SIZE}")
        return cls(
            type=MessageType(type_code),
            packet_no=packet_no,
            is_last_packet=bool(is_last),
            payload=payload[:size],
        )

    @classmethod
    def for_checksum(cls, value):
        """Build a checksum message carrying *value* as an unsigned 32-bit integer."""
        return cls(
            type=MessageType.CHECKSUM_DATA,
            packet_no=0,
            is_last_packet=True,
            payload=_CHECKSUM.pack(value & 0xFFFFFFFF),
        )

    @classmethod
    def for_result(cls, match):
        """Build a result message reporting MATCH or MISMATCH."""
        text = _MATCH if match else _MISMATCH
        return cls(
            type=MessageType.RESULT_DATA,
            packet_no=0,
            is_last_packet=True,
            payload=text.encode("ascii") + b"\0",
        )

    def checksum_value(self):
        """Return the checksum carried by a checksum message."""
        if self.type is not MessageType.CHECKSUM_DATA:
            raise ValueError(f"{self.type.name} message carries no checksum")
        if self.size < _CHECKSUM.size:
            raise ValueError("checksum payload is too short")
        return _CHECKSUM.unpack_from(self.payload)[0]

    def text(self):
        """Return the payload as text, up to the first NUL byte."""
        return self.payload.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def split_packets(data) -> Iterator[Message]:
    """Cut *data* into numbered packet messages, flagging the final one."""
    data = bytes(data)
    total = len(data)
    for packet_no, start in enumerate(range(0, total, MAX_PAYLOAD_SIZE)):
        end = start + MAX_PAYLOAD_SIZE
        yield Message(
            type=MessageType.PACKET_DATA,
            packet_no=packet_no,
            is_last_packet=end >= total,
            payload=data[start:end],
        )


def reassemble(messages: Iterable[Message]) -> bytes:
    """Rebuild the original bytes from packet messages, stopping at the last packet.

    Messages of other types are skipped. Packets may arrive in any order.
    """
    chunks = {}
    for message in messages:
        if message.type is not MessageType.PACKET_DATA:
            continue
        chunks[message.packet_no] = message.payload
        if message.is_last_packet:
            final = message.packet_no
            break
    else:
        raise ValueError("message stream ended before the last packet")

    missing = sorted(set(range(final + 1)) - chunks.keys())
    if missing:
        raise ValueError(f"missing packets: {missing}")
    short = [n for n in range(final) if len(chunks[n]) != MAX_PAYLOAD_SIZE]
    if short:
        raise ValueError(f"packets shorter than {MAX_PAYLOAD_SIZE} bytes before the last: {short}")
    return b"".join(chunks[n] for n in range(final + 1))