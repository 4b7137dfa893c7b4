"""Dial options for opening a session."""

from pydantic import BaseModel, Field

from .constants import DEFAULT_RETRY_BACKOFF, DEFAULT_TIMEOUT


class DialOptions(BaseModel):
    """Options accepted by :func:`sockjs_xhr.connect`."""

    base_url: str = Field(..., description="SockJS endpoint, e.g. http://localhost:8081/echo")
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Per-request timeout in seconds")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra headers sent with every request")
    handshake_retries: int = Field(0, ge=0, description="Extra handshake attempts on transport failure")
    retry_backoff: float = Field(DEFAULT_RETRY_BACKOFF, ge=0, description="First retry delay, doubled per attempt")
    fetch_info: bool = Field(True, description="Query /info before the handshake")
