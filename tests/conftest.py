"""Shared fixtures: a scripted SockJS endpoint behind httpx.MockTransport."""

import threading

import httpx
import pytest

from sockjs_xhr import SessionAddress, XHRSession

BASE_URL = "http://sockjs.test/echo"


class ScriptedEndpoint:
    """Answers each poll with the next scripted body and records every request.

    A scripted item may be bytes, an ``httpx.Response``, an exception to raise,
    or a ``threading.Event`` the poll blocks on before taking the next item.
    """

    def __init__(self, *bodies, send_status: int = 204, info: bytes | None = None):
        self.bodies = list(bodies)
        self.send_status = send_status
        self.info = info
        self.requests: list[httpx.Request] = []
        # polls in flight right now, and the most ever seen at once
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)

        path = request.url.path
        if path.endswith("/info"):
            return httpx.Response(200, content=self.info or b"{}")
        if path.endswith("/xhr_send"):
            return httpx.Response(self.send_status)

        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            overlapping = self.active > 1
        try:
            if overlapping:
                # a SockJS server refuses a second poll on the same session
                return httpx.Response(200, content=b'c[2010,"Another connection still open"]\n')
            item = self._next()
            while isinstance(item, threading.Event):
                item.wait(5)
                item = self._next()
            if isinstance(item, Exception):
                raise item
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, content=item)
        finally:
            with self._lock:
                self.active -= 1

    def _next(self):
        with self._lock:
            if not self.bodies:
                return b"h\n"
            return self.bodies.pop(0)

    def calls(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/" + endpoint)]

    @property
    def polls(self) -> int:
        return len(self.calls("xhr"))

    @property
    def sends(self) -> list[httpx.Request]:
        return self.calls("xhr_send")


@pytest.fixture
def endpoint():
    """Factory building a scripted endpoint and an unopened session bound to it."""
    clients = []

    def make(*bodies, **kwargs):
        ep = ScriptedEndpoint(*bodies, **kwargs)
        client = httpx.Client(transport=httpx.MockTransport(ep.handler))
        clients.append(client)
        session = XHRSession(SessionAddress(BASE_URL, "123", "abcdefghij0123456789"), client=client)
        return ep, session

    yield make
    for client in clients:
        client.close()
