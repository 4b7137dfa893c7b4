"""End-to-end tests against the in-process SockJS xhr server."""

import threading
import time

import httpx
import pytest

from sockjs_xhr import Cancelled, EndOfSession, Server, SessionNotOpen, connect


def start_server(**kwargs) -> Server:
    server = Server("127.0.0.1", 0, **kwargs)
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()

    # Wait for server to start
    time.sleep(0.1)
    return server


def test_echo_round_trip() -> None:
    """Messages sent are echoed back in order."""
    print("Testing echo round trip...")
    server = start_server()

    try:
        session = connect(server.url, timeout=5.0)
        assert session.info is not None
        assert session.info.websocket is False

        session.send("hello")
        session.send("world")
        assert session.receive(timeout=5) == "hello"
        assert session.receive(timeout=5) == "world"
        assert server.sessions == [session.address.session_id]
        print("✓ Echo round trip test passed")

        session.close()

    finally:
        server.stop()


def test_custom_handler_and_push() -> None:
    """on_message replies and server pushes reach the client."""
    server = start_server(on_message=lambda sid, msg: msg.upper() if msg != "quiet" else None)

    try:
        with connect(server.url, timeout=5.0, fetch_info=False) as session:
            session.send("quiet")
            session.send("loud")
            assert session.receive(timeout=5) == "LOUD"

            server.push(session.address.session_id, "pushed", "twice")
            assert session.receive(timeout=5) == "pushed"
            assert session.receive(timeout=5) == "twice"

    finally:
        server.stop()


def test_explicit_none_handler_echoes() -> None:
    """Passing on_message=None keeps the echo behaviour."""
    server = start_server(on_message=None)

    try:
        with connect(server.url, timeout=5.0, fetch_info=False) as session:
            session.send("same")
            assert session.receive(timeout=5) == "same"

    finally:
        server.stop()


def test_server_close() -> None:
    """A server-side close ends the client's session."""
    server = start_server()

    try:
        session = connect(server.url, timeout=5.0)
        session.send("last")
        assert session.receive(timeout=5) == "last"

        server.close_session(session.address.session_id)
        with pytest.raises(EndOfSession) as excinfo:
            session.receive(timeout=5)
        assert excinfo.value.code == 3000
        assert excinfo.value.reason == "Go away!"

        with pytest.raises(SessionNotOpen):
            session.send("after")
        session.close()

    finally:
        server.stop()


def test_heartbeats_are_skipped() -> None:
    """Idle polls answered with heartbeats never produce a message."""
    server = start_server(heartbeat_interval=0.05)

    try:
        session = connect(server.url, timeout=5.0)
        with pytest.raises(Cancelled):
            session.receive(timeout=0.3)
        assert session.is_open

        # let the abandoned poll collect its heartbeat before data is queued
        time.sleep(0.3)
        session.send("after heartbeats")
        assert session.receive(timeout=5) == "after heartbeats"
        session.close()

    finally:
        server.stop()


def test_send_to_unknown_session() -> None:
    """The server rejects bodies for sessions it never opened."""
    server = start_server()

    try:
        with httpx.Client(timeout=5.0) as client:
            resp = client.post(f"{server.url}/000/nosuchsession/xhr_send", content=b'["x"]')
            assert resp.status_code == 404

            resp = client.get(f"{server.url}/info")
            assert resp.status_code == 200
            assert "entropy" in resp.json()

    finally:
        server.stop()
