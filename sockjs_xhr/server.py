"""Minimal in-process SockJS xhr server for demos and integration tests."""

from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from .codecs import JSONCodec
from .constants import (
    DEFAULT_CLOSE_REASON,
    HEARTBEAT_INTERVAL,
    INFO_PATH,
    XHR_PATH,
    XHR_SEND_PATH,
    CloseCode,
)
from .frames import ArrayFrame, CloseFrame, HeartbeatFrame, OpenFrame, pack_frame
from .info import ServerInfo


class _ServerSession:
    """Server side state of one session: outgoing messages and close status."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.outbox: list[str] = []
        self.closed: CloseFrame | None = None
        self.cond = threading.Condition()

    def push(self, messages: list[str]) -> None:
        with self.cond:
            self.outbox.extend(messages)
            self.cond.notify_all()

    def close(self, code: int, reason: str) -> None:
        with self.cond:
            if self.closed is None:
                self.closed = CloseFrame(code, reason)
            self.cond.notify_all()

    def next_frame(self, heartbeat_interval: float, stopping: threading.Event):
        """Block until there is something to answer a poll with."""
        with self.cond:
            self.cond.wait_for(lambda: self.outbox or self.closed or stopping.is_set(), heartbeat_interval)
            if self.outbox:
                messages, self.outbox = self.outbox, []
                return ArrayFrame(tuple(messages))
            if self.closed is not None:
                return self.closed
            return HeartbeatFrame()


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server: _HTTPServer

    def do_GET(self):  # noqa: N802
        """Serve ``/info``."""
        app = self.server.app
        if self.path.rstrip("/") != f"{app.prefix}/{INFO_PATH}":
            self._reply(404, b"Not found")
            return

        info = ServerInfo(websocket=False, cookie_needed=False, origins=["*:*"], entropy=secrets.randbits(31))
        self._reply(200, info.model_dump_json().encode(), "application/json; charset=UTF-8")

    def do_POST(self):  # noqa: N802
        """Serve ``xhr`` polls and ``xhr_send`` bodies."""
        app = self.server.app
        content_length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(content_length)

        route = self._route(app.prefix)
        if route is None:
            self._reply(404, b"Not found")
            return

        session_id, endpoint = route
        if endpoint == XHR_PATH:
            self._reply(200, app._handle_poll(session_id))
        elif endpoint == XHR_SEND_PATH:
            status, payload = app._handle_send(session_id, body)
            self._reply(status, payload)
        else:
            self._reply(404, b"Not found")

    def _route(self, prefix: str) -> tuple[str, str] | None:
        path = self.path.split("?", 1)[0]
        if not path.startswith(prefix + "/"):
            return None
        parts = path[len(prefix) + 1 :].split("/")
        if len(parts) != 3 or not all(parts):
            return None
        _server_id, session_id, endpoint = parts
        return session_id, endpoint

    def _reply(self, status: int, data: bytes, content_type: str = "application/javascript; charset=UTF-8"):
        self.send_response(status)
        if status != 204:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
        self.end_headers()
        if data:
            self.wfile.write(data)

    def log_message(self, format: str, *args):  # noqa: A002
        logging.debug("%s - %s", self.address_string(), format % args)


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, addr: tuple[str, int], app: Server):
        super().__init__(addr, _Handler)
        self.app = app


class Server:
    """SockJS xhr server that echoes every message back to its session by default."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        prefix: str = "/echo",
        on_message: Callable[[str, str], str | None] | None = None,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
    ):
        """Initialize server and bind its socket.

        Args:
            host: Host to bind to
            port: Port to bind to, 0 picks a free one
            prefix: URL prefix of the SockJS endpoint
            on_message: Callback ``(session_id, message) -> reply``; a ``None``
                reply sends nothing back
            heartbeat_interval: Seconds a poll is held before answering ``h``
        """
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.on_message = on_message or self._default_message_handler
        self.heartbeat_interval = heartbeat_interval
        self._codec = JSONCodec()
        self._sessions: dict[str, _ServerSession] = {}
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._running = threading.Event()
        self._httpd = _HTTPServer((host, port), self)
        self.host, self.port = self._httpd.server_address[:2]

    @property
    def url(self) -> str:
        """Base URL clients should connect to."""
        return f"http://{self.host}:{self.port}{self.prefix}"

    @property
    def sessions(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def _default_message_handler(self, session_id: str, message: str) -> str:
        """Default handler that echoes messages.

        Args:
            session_id: Session the message arrived on
            message: Received message

        Returns:
            Echoed message
        """
        return message

    def _handle_poll(self, session_id: str) -> bytes:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                self._sessions[session_id] = _ServerSession(session_id)
                logging.debug("Opened session %s", session_id)
                return pack_frame(OpenFrame())

        frame = session.next_frame(self.heartbeat_interval, self._stopping)
        return pack_frame(frame, self._codec)

    def _handle_send(self, session_id: str, body: bytes) -> tuple[int, bytes]:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.closed is not None:
            return 404, b"Not found"
        if not body:
            return 500, b"Payload expected."

        try:
            messages = self._codec.decode(body)
        except ValueError:
            return 500, b"Broken JSON encoding."
        if not isinstance(messages, list) or not all(isinstance(m, str) for m in messages):
            return 500, b"Broken JSON encoding."

        replies = []
        for message in messages:
            reply = self.on_message(session_id, message)
            if reply is not None:
                replies.append(reply)
        if replies:
            session.push(replies)
        return 204, b""

    def push(self, session_id: str, *messages: str) -> None:
        """Queue messages for delivery to a session's next poll."""
        with self._lock:
            session = self._sessions[session_id]
        session.push(list(messages))

    def close_session(
        self, session_id: str, code: int = CloseCode.GO_AWAY, reason: str = DEFAULT_CLOSE_REASON
    ) -> None:
        """Answer every further poll of a session with a CLOSE frame."""
        with self._lock:
            session = self._sessions[session_id]
        session.close(code, reason)

    def serve_forever(self):
        """Start the server and handle requests until :meth:`stop`."""
        self._running.set()
        logging.info("SockJS xhr server listening on %s", self.url)
        self._httpd.serve_forever(poll_interval=0.05)

    def stop(self):
        """Stop the server."""
        self._stopping.set()
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            with session.cond:
                session.cond.notify_all()
        if self._running.is_set():
            self._httpd.shutdown()
        self._running.clear()
        self._httpd.server_close()
