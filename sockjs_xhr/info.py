"""Server capability discovery (``GET <base>/info``)."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import INFO_PATH
from .errors import ProtocolError, TransportError


class ServerInfo(BaseModel):
    """Capabilities advertised by a SockJS server."""

    model_config = ConfigDict(extra="ignore")

    websocket: bool = Field(True, description="Whether the websocket transport is enabled")
    cookie_needed: bool = Field(False, description="Whether sticky-session cookies are required")
    origins: list[str] = Field(default_factory=lambda: ["*:*"], description="Allowed origins")
    entropy: int = Field(0, description="Random value supplied by the server")


def fetch_info(client: httpx.Client, base_url: str) -> ServerInfo:
    """Fetch and parse the server's ``/info`` document.

    Args:
        client: HTTP client to issue the request with
        base_url: SockJS endpoint base URL

    Returns:
        Parsed server capabilities

    Raises:
        TransportError: If the request fails or returns a non-2xx status
        ProtocolError: If the response is not a valid info document
    """
    url = f"{base_url.rstrip('/')}/{INFO_PATH}"
    try:
        resp = client.get(url)
    except httpx.HTTPError as exc:
        raise TransportError(f"GET {url} failed: {exc}") from exc

    if not resp.is_success:
        raise TransportError(f"GET {url} returned {resp.status_code}", resp.status_code)

    try:
        info = ServerInfo.model_validate_json(resp.content)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid info document: {exc}") from exc

    logging.debug("Server info %s: %s", base_url, info)
    return info
