"""Base codec interface for frame payloads and send bodies."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any


class Codec(ABC):
    """Serializes the JSON-shaped payloads carried by ARRAY/CLOSE frames."""

    @abstractmethod
    def encode(self, data: Any) -> bytes:
        """Encode a payload value to bytes."""

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        """Decode bytes to a payload value.

        Implementations raise ``ValueError`` (or a subclass) on bad input.
        """

    def encode_messages(self, messages: Iterable[str]) -> bytes:
        """Encode messages as the array body used by ``xhr_send`` and ARRAY frames."""
        return self.encode(list(messages))
