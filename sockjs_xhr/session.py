"""Session addressing, lifecycle phase and the pending message queue."""

from __future__ import annotations

import secrets
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .constants import SERVER_ID_DIGITS, SESSION_ID_ALPHABET, SESSION_ID_LENGTH


class Phase(Enum):
    """Session lifecycle phase. Only moves forward."""

    UNOPENED = 0
    OPEN = 1
    CLOSED = 2

    def can_become(self, other: Phase) -> bool:
        return other.value > self.value


def new_server_id() -> str:
    """Random shard token: a fixed-width decimal string, e.g. ``"042"``."""
    return f"{secrets.randbelow(10**SERVER_ID_DIGITS):0{SERVER_ID_DIGITS}d}"


def new_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """Random high-entropy session token."""
    return "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class SessionAddress:
    """Base URL plus shard and session tokens; used to build every request URL."""

    base_url: str
    server_id: str
    session_id: str

    @classmethod
    def generate(cls, base_url: str) -> SessionAddress:
        """Create an address with fresh random tokens."""
        return cls(base_url.rstrip("/"), new_server_id(), new_session_id())

    @property
    def session_url(self) -> str:
        return f"{self.base_url}/{self.server_id}/{self.session_id}"

    def url(self, endpoint: str) -> str:
        """URL of ``endpoint`` (``xhr`` or ``xhr_send``) for this session."""
        return f"{self.session_url}/{endpoint}"


class MessageQueue:
    """FIFO buffer of decoded messages awaiting delivery."""

    def __init__(self, messages: Iterable[str] = ()):
        self._items: deque[str] = deque(messages)

    def push(self, message: str) -> None:
        self._items.append(message)

    def extend(self, messages: Iterable[str]) -> None:
        self._items.extend(messages)

    def pop(self) -> str:
        """Remove and return the oldest message.

        Raises:
            IndexError: If the queue is empty
        """
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
