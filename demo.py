#!/usr/bin/env python3
"""Demo - SockJS xhr session against the local echo server."""

import argparse
import logging
import threading
import time

from sockjs_xhr import EndOfSession, Server, connect


def demo_echo(url: str) -> None:
    """Open a session, send a few messages and print the echoes."""
    print("=== SockJS xhr Demo: Echo ===")

    session = connect(url, timeout=10.0)
    print(f"\nSession: {session.address.session_url}")
    print(f"Server info: {session.info}")

    for text in ["Hello", "from", "the xhr transport!"]:
        session.send(text)
        print(f"   Sent: {text}")

    for _ in range(3):
        print(f"   Received: {session.receive(timeout=10)}")

    session.close()


def demo_server_close(server: Server) -> None:
    """Show the session ending when the server closes it."""
    print("\n=== SockJS xhr Demo: Server Close ===")

    session = connect(server.url, timeout=10.0, fetch_info=False)
    server.push(session.address.session_id, "one", "two")
    server.close_session(session.address.session_id)

    for message in session:
        print(f"   Received: {message}")

    try:
        session.receive()
    except EndOfSession as exc:
        print(f"   Session ended: {exc.code} {exc.reason}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", help="Existing SockJS endpoint; a local server is started when omitted")
    parser.add_argument("--debug", action="store_true", help="Log every frame")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    if args.url:
        demo_echo(args.url)
        return

    # Start server
    server = Server("127.0.0.1", 0, heartbeat_interval=1.0)
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()
    time.sleep(0.1)

    try:
        demo_echo(server.url)
        demo_server_close(server)
    finally:
        server.stop()

    print("\nDemo completed!")


if __name__ == "__main__":
    main()
