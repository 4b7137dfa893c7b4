"""SockJS frame structures and serialization."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar

from .codecs import Codec, JSONCodec
from .constants import FRAME_TERMINATOR, FrameTag

READ_CHUNK_SIZE = 64 * 1024

# ----------------------------------------------------------------------------
# Frame structures
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class Frame:
    """Base class of every decoded frame."""

    tag: ClassVar[int | None] = None


@dataclass(frozen=True)
class OpenFrame(Frame):
    """Session is live."""

    tag: ClassVar[int] = FrameTag.OPEN


@dataclass(frozen=True)
class HeartbeatFrame(Frame):
    """Liveness signal, never delivered to the caller."""

    tag: ClassVar[int] = FrameTag.HEARTBEAT


@dataclass(frozen=True)
class ArrayFrame(Frame):
    """Zero or more application messages."""

    tag: ClassVar[int] = FrameTag.ARRAY

    messages: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CloseFrame(Frame):
    """Server-initiated termination."""

    tag: ClassVar[int] = FrameTag.CLOSE

    code: int = 0
    reason: str = ""


@dataclass(frozen=True)
class MalformedFrame(Frame):
    """Body that matched no known variant or failed payload decoding."""

    error: str = "invalid frame type"
    raw: bytes = b""


# ----------------------------------------------------------------------------
# Frame serialization/deserialization
# ----------------------------------------------------------------------------


def read_body(body: bytes | BinaryIO | Iterable[bytes]) -> bytes:
    """Read a response body to end-of-stream.

    Args:
        body: Raw bytes, a file-like object with ``read`` or an iterable of chunks

    Returns:
        The complete body
    """
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)

    buf = bytearray()
    if hasattr(body, "read"):
        while True:
            chunk = body.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buf.extend(chunk)
    else:
        for chunk in body:
            buf.extend(chunk)
    return bytes(buf)


def parse_frame(body: bytes | BinaryIO | Iterable[bytes], codec: Codec | None = None) -> Frame:
    """Parse one SockJS frame from a poll response body.

    The whole body is consumed before the payload is interpreted. Decoding
    failures are reported as a ``MalformedFrame``, never raised.

    Args:
        body: Response body
        codec: Payload codec, JSON by default

    Returns:
        Parsed frame
    """
    data = read_body(body)
    if not data:
        return MalformedFrame("invalid frame type: empty body", data)

    codec = codec or JSONCodec()
    tag = data[0]
    payload = data[1:].split(FRAME_TERMINATOR, 1)[0]

    if tag == FrameTag.OPEN:
        return OpenFrame()
    elif tag == FrameTag.HEARTBEAT:
        return HeartbeatFrame()
    elif tag == FrameTag.ARRAY:
        return _parse_array(payload, codec, data)
    elif tag == FrameTag.CLOSE:
        return _parse_close(payload, codec, data)
    return MalformedFrame(f"invalid frame type: {data[:1]!r}", data)


def _parse_array(payload: bytes, codec: Codec, raw: bytes) -> Frame:
    try:
        messages = codec.decode(payload)
    except ValueError as exc:
        return MalformedFrame(f"bad array payload: {exc}", raw)

    if not isinstance(messages, list) or not all(isinstance(m, str) for m in messages):
        return MalformedFrame("array payload is not a list of strings", raw)
    return ArrayFrame(tuple(messages))


def _parse_close(payload: bytes, codec: Codec, raw: bytes) -> Frame:
    try:
        decoded = codec.decode(payload)
    except ValueError as exc:
        return MalformedFrame(f"bad close payload: {exc}", raw)

    if not isinstance(decoded, list) or len(decoded) != 2:
        return MalformedFrame("close payload is not [code, reason]", raw)
    code, reason = decoded
    if isinstance(code, bool) or not isinstance(code, int) or not isinstance(reason, str):
        return MalformedFrame("close payload is not [code, reason]", raw)
    return CloseFrame(code, reason)


def pack_frame(frame: Frame, codec: Codec | None = None) -> bytes:
    """Pack a frame into its ``<tag><payload>\\n`` wire form.

    Args:
        frame: The frame to serialize
        codec: Payload codec, JSON by default

    Returns:
        Wire representation of the frame

    Raises:
        ValueError: If the frame has no wire form
    """
    codec = codec or JSONCodec()
    if isinstance(frame, ArrayFrame):
        payload = codec.encode_messages(frame.messages)
    elif isinstance(frame, CloseFrame):
        payload = codec.encode([frame.code, frame.reason])
    elif isinstance(frame, (OpenFrame, HeartbeatFrame)):
        payload = b""
    else:
        raise ValueError(f"Cannot pack {type(frame).__name__}")

    return bytes([frame.tag]) + payload + FRAME_TERMINATOR
