"""Payload codec implementations."""

from .base import Codec
from .json_codec import JSONCodec

__all__ = [
    "Codec",
    "JSONCodec",
]
