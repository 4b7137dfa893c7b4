# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
r"""sockjs_xhr - SockJS client over the xhr long-polling transport.

This package lets a process exchange string messages with a SockJS server
without a persistent duplex connection: polls are plain HTTP POSTs the server
holds open until data is available, and every outbound message is its own
request body.

The implementation provides:
- Frame codec for the ``o``/``h``/``a``/``c`` wire frames
- XHRSession with handshake, ordered receive, send and idempotent close
- Cancellable, deadline-aware receive
- Capability discovery through ``/info``
- A small threaded SockJS xhr server for demos and tests
"""

# Import public API from modules
from .client import XHRSession, connect
from .codecs import Codec, JSONCodec
from .constants import (
    DEFAULT_TIMEOUT,
    HEARTBEAT_INTERVAL,
    CloseCode,
    FrameTag,
)
from .errors import (
    Cancelled,
    ConnectFailure,
    EndOfSession,
    ProtocolError,
    SessionNotOpen,
    SockJSError,
    TransportError,
)
from .frames import (
    ArrayFrame,
    CloseFrame,
    Frame,
    HeartbeatFrame,
    MalformedFrame,
    OpenFrame,
    pack_frame,
    parse_frame,
)
from .info import ServerInfo, fetch_info
from .options import DialOptions
from .server import Server
from .session import MessageQueue, Phase, SessionAddress

# Public API exports
__all__ = [
    # Core classes
    "XHRSession",
    "SessionAddress",
    "MessageQueue",
    "Phase",
    "DialOptions",
    "ServerInfo",
    "Server",
    "Codec",
    "JSONCodec",
    # Frames
    "Frame",
    "OpenFrame",
    "HeartbeatFrame",
    "ArrayFrame",
    "CloseFrame",
    "MalformedFrame",
    "pack_frame",
    "parse_frame",
    # Constants and enums
    "FrameTag",
    "CloseCode",
    "DEFAULT_TIMEOUT",
    "HEARTBEAT_INTERVAL",
    # Errors
    "SockJSError",
    "ConnectFailure",
    "ProtocolError",
    "TransportError",
    "SessionNotOpen",
    "EndOfSession",
    "Cancelled",
    # Helpers
    "connect",
    "fetch_info",
]
