"""SockJS xhr long-polling client session."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from typing import Any

import httpx

from .codecs import Codec, JSONCodec
from .constants import (
    CANCEL_CHECK_INTERVAL,
    CONTENT_TYPE,
    DEFAULT_CLOSE_REASON,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_TIMEOUT,
    XHR_PATH,
    XHR_SEND_PATH,
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
from .frames import ArrayFrame, CloseFrame, Frame, HeartbeatFrame, MalformedFrame, OpenFrame, parse_frame
from .info import ServerInfo, fetch_info
from .options import DialOptions
from .session import MessageQueue, Phase, SessionAddress


class _PendingPoll:
    """A poll request running on a worker thread so the caller can walk away from it."""

    def __init__(self, session: XHRSession):
        self.response: httpx.Response | None = None
        self.error: Exception | None = None
        self.done = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(session,), daemon=True, name="sockjs-xhr-poll")
        self._thread.start()

    def _run(self, session: XHRSession) -> None:
        try:
            self.response = session._post(XHR_PATH)
        except Exception as exc:
            self.error = exc
        finally:
            self.done.set()

    def join(self, deadline: float | None, cancel: threading.Event | None) -> None:
        """Wait for the request to finish.

        Raises:
            Cancelled: If ``cancel`` is set or ``deadline`` passes first; the
                request keeps running
        """
        while True:
            interval = CANCEL_CHECK_INTERVAL
            if deadline is not None:
                interval = min(interval, max(0.0, deadline - time.monotonic()))
            if self.done.wait(interval):
                break
            if cancel is not None and cancel.is_set():
                raise Cancelled("receive cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise Cancelled("receive deadline exceeded")
        self._thread.join()

    def result(self) -> httpx.Response:
        if self.error is not None:
            raise self.error
        return self.response


class XHRSession:
    """Client end of one SockJS session over the xhr long-polling transport."""

    def __init__(
        self,
        address: SessionAddress,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        codec: Codec | None = None,
    ):
        """Initialize an unopened session.

        Args:
            address: Session address used to build every request URL
            client: HTTP client to use; one is created (and owned) when omitted
            timeout: Per-request timeout for an owned client
            headers: Extra headers sent with every request
            codec: Payload codec, JSON by default
        """
        self.address = address
        self.info: ServerInfo | None = None
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._headers = {"Content-Type": CONTENT_TYPE, **(headers or {})}
        self._codec = codec or JSONCodec()

        self._phase = Phase.UNOPENED
        self._pending = MessageQueue()
        self._close_code: int | None = None
        self._close_reason: str | None = None
        self._lock = threading.Lock()
        self._recv_lock = threading.Lock()
        # poll left running by a cancelled receive; guarded by _recv_lock
        self._abandoned: _PendingPoll | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        with self._lock:
            return self._phase

    @property
    def is_open(self) -> bool:
        return self.phase is Phase.OPEN

    @property
    def pending(self) -> int:
        """Number of received messages not yet returned by :meth:`receive`."""
        with self._lock:
            return len(self._pending)

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def close_reason(self) -> str | None:
        return self._close_reason

    def _advance(self, phase: Phase) -> None:
        # caller holds self._lock
        if self._phase.can_become(phase):
            logging.debug("Session %s: %s -> %s", self.address.session_id, self._phase.name, phase.name)
            self._phase = phase

    def _mark_closed(self, code: int, reason: str) -> None:
        # caller holds self._lock
        if self._close_code is None:
            self._close_code, self._close_reason = code, reason
        self._advance(Phase.CLOSED)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _post(self, endpoint: str, content: bytes = b"") -> httpx.Response:
        """POST to a session endpoint.

        Raises:
            TransportError: On network failure, timeout or non-2xx status
        """
        url = self.address.url(endpoint)
        try:
            resp = self._client.post(url, content=content, headers=self._headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc

        if not resp.is_success:
            raise TransportError(f"POST {url} returned {resp.status_code}", resp.status_code)
        return resp

    def fetch_info(self) -> ServerInfo:
        """Query the server's ``/info`` endpoint and keep the result on ``self.info``."""
        self.info = fetch_info(self._client, self.address.base_url)
        return self.info

    # ------------------------------------------------------------------
    # Handshake
    # ------------------------------------------------------------------

    def open(self, retries: int = 0, backoff: float = DEFAULT_RETRY_BACKOFF) -> XHRSession:
        """Perform the opening handshake.

        Args:
            retries: Extra attempts after a transport-level failure
            backoff: Delay before the first retry, doubled on each further one

        Returns:
            This session, now open

        Raises:
            ConnectFailure: If the server does not answer with an OPEN frame
            SessionNotOpen: If the session was already closed
        """
        with self._lock:
            if self._phase is Phase.OPEN:
                return self
            if self._phase is Phase.CLOSED:
                raise SessionNotOpen("session is closed")

        attempt = 0
        while True:
            try:
                self._handshake()
                return self
            except ConnectFailure as exc:
                # a wrong frame is an answer, not a transport failure
                if exc.frame is not None or attempt >= retries:
                    raise
                delay = backoff * (2**attempt)
                logging.debug("Handshake attempt %d failed (%s), retrying in %.2fs", attempt + 1, exc, delay)
                time.sleep(delay)
                attempt += 1

    def _handshake(self) -> None:
        try:
            resp = self._post(XHR_PATH)
        except TransportError as exc:
            raise ConnectFailure(f"can't start session: {exc}") from exc

        first = resp.content[:1]
        if first != bytes([FrameTag.OPEN]):
            # b"" marks an empty answer, None is reserved for transport failures
            raise ConnectFailure(f"can't start session, invalid frame: {first!r}", first)

        with self._lock:
            self._advance(Phase.OPEN)
        logging.debug("Session %s opened", self.address.session_url)

    # ------------------------------------------------------------------
    # Receive
    # ------------------------------------------------------------------

    def receive(self, timeout: float | None = None, cancel: threading.Event | None = None) -> str:
        """Return the next message, polling the server as long as needed.

        Args:
            timeout: Give up after this many seconds
            cancel: Event that aborts the call when set

        Returns:
            The next message in server order

        Raises:
            EndOfSession: Once the session is closed and every message delivered
            ProtocolError: If a poll response cannot be decoded
            TransportError: If a poll request fails
            Cancelled: If ``cancel`` is set or ``timeout`` elapses first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        wait = -1 if deadline is None else max(0.0, deadline - time.monotonic())
        if not self._recv_lock.acquire(timeout=wait):
            raise Cancelled("receive deadline exceeded waiting for another receive")

        try:
            while True:
                with self._lock:
                    if self._pending:
                        return self._pending.pop()
                    if self._phase is Phase.CLOSED:
                        raise EndOfSession(self._close_code, self._close_reason)

                if cancel is not None and cancel.is_set():
                    raise Cancelled("receive cancelled")

                try:
                    frame = self._poll(deadline, cancel)
                except TransportError:
                    with self._lock:
                        if self._phase is Phase.CLOSED:
                            continue
                    raise

                self._dispatch(frame)
        finally:
            self._recv_lock.release()

    def _poll(self, deadline: float | None, cancel: threading.Event | None) -> Frame:
        # the server allows one outstanding poll per session
        if self._abandoned is not None:
            self._abandoned.join(deadline, cancel)
            logging.debug("Dropping result of cancelled poll")
            self._abandoned = None

        if deadline is None and cancel is None:
            resp = self._post(XHR_PATH)
        else:
            call = _PendingPoll(self)
            try:
                call.join(deadline, cancel)
            except Cancelled:
                self._abandoned = call
                raise
            resp = call.result()

        frame = parse_frame(resp.content, self._codec)
        logging.debug("Received frame %r", frame)
        return frame

    def _dispatch(self, frame: Frame) -> None:
        with self._lock:
            if self._phase is Phase.CLOSED:
                # closed locally while the poll was in flight
                logging.debug("Discarding %r received after close", frame)
                return

            if isinstance(frame, MalformedFrame):
                raise ProtocolError(frame.error)
            elif isinstance(frame, OpenFrame):
                self._advance(Phase.OPEN)
            elif isinstance(frame, HeartbeatFrame):
                pass
            elif isinstance(frame, ArrayFrame):
                self._pending.extend(frame.messages)
            elif isinstance(frame, CloseFrame):
                self._mark_closed(frame.code, frame.reason)
            else:
                raise ProtocolError(f"unhandled frame {frame!r}")

    def __iter__(self) -> Iterator[str]:
        """Yield messages until the session ends."""
        while True:
            try:
                yield self.receive()
            except EndOfSession:
                return

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    def send(self, message: str) -> None:
        """Send one message.

        Raises:
            SessionNotOpen: If the session is not open; no request is made
            TransportError: If the request fails or returns a non-2xx status
        """
        if not isinstance(message, str):
            raise TypeError(f"message must be str, not {type(message).__name__}")

        with self._lock:
            if self._phase is not Phase.OPEN:
                raise SessionNotOpen(f"session is {self._phase.name.lower()}")

        body = self._codec.encode_messages([message])
        logging.debug("Sending %s", body)
        self._post(XHR_SEND_PATH, body)

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    def close(self, code: int = CloseCode.GO_AWAY, reason: str = DEFAULT_CLOSE_REASON) -> None:
        """Close the session locally. Safe to call more than once."""
        with self._lock:
            self._mark_closed(code, reason)

        if self._owns_client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> XHRSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<XHRSession {self.address.session_url} {self._phase.name}>"


def connect(base_url: str, client: httpx.Client | None = None, codec: Codec | None = None, **kwargs: Any) -> XHRSession:
    """Open a new session against a SockJS endpoint.

    Args:
        base_url: SockJS endpoint base URL
        client: HTTP client to use; one is created (and owned) when omitted
        codec: Payload codec, JSON by default
        **kwargs: Any :class:`DialOptions` field

    Returns:
        An open session

    Raises:
        ConnectFailure: If the handshake fails
        TransportError: If ``/info`` cannot be fetched
        ProtocolError: If ``/info`` is malformed
    """
    options = DialOptions(base_url=base_url, **kwargs)
    session = XHRSession(
        SessionAddress.generate(options.base_url),
        client=client,
        timeout=options.timeout,
        headers=options.headers,
        codec=codec,
    )
    try:
        if options.fetch_info:
            session.fetch_info()
        session.open(retries=options.handshake_retries, backoff=options.retry_backoff)
    except SockJSError:
        session.close()
        raise
    return session
