"""Exception types raised by the SockJS xhr client."""

from __future__ import annotations


class SockJSError(Exception):
    """Base exception for sockjs_xhr."""


class ConnectFailure(SockJSError):
    """Raised when the handshake does not observe an OPEN frame.

    ``frame`` holds the first byte the server answered with, ``b""`` for an
    empty answer, or ``None`` when no answer arrived at all.
    """

    def __init__(self, message: str, frame: bytes | None = None):
        super().__init__(message)
        self.frame = frame


class ProtocolError(SockJSError, ValueError):
    """Raised when a response body cannot be decoded into a known frame."""


class TransportError(SockJSError, ConnectionError):
    """Raised when an HTTP call fails or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SessionNotOpen(SockJSError):
    """Raised when sending on a session that is not open."""


class EndOfSession(SockJSError):
    """Raised by receive once the session is closed and drained."""

    def __init__(self, code: int | None = None, reason: str | None = None):
        super().__init__(f"session closed ({code}: {reason})")
        self.code = code
        self.reason = reason


class Cancelled(SockJSError):
    """Raised when a receive is cancelled by the caller or its deadline."""
