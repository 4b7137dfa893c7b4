"""JSON codec for SockJS frame payloads."""

import json
from typing import Any

from .base import Codec


class JSONCodec(Codec):
    """JSON codec for ARRAY and CLOSE payloads and outbound send bodies."""

    def encode(self, data: Any) -> bytes:
        """Encode data to compact JSON bytes.

        Args:
            data: Data to encode, usually a list of message strings

        Returns:
            UTF-8 encoded JSON bytes
        """
        return json.dumps(data, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        """Decode JSON bytes to data.

        Args:
            data: UTF-8 encoded JSON bytes

        Returns:
            Decoded data

        Raises:
            ValueError: If the bytes are not valid UTF-8 JSON or nest too deeply
        """
        try:
            return json.loads(data.decode("utf-8"))
        except RecursionError as exc:
            raise ValueError("JSON nested too deeply") from exc
