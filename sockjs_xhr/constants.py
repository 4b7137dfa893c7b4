"""SockJS xhr transport constants and enums."""

from enum import IntEnum

# ----------------------------------------------------------------------------
# Frame tags
# ----------------------------------------------------------------------------


class FrameTag(IntEnum):
    """Leading byte identifying each frame variant."""

    OPEN = 0x6F  # "o"
    HEARTBEAT = 0x68  # "h"
    ARRAY = 0x61  # "a"
    CLOSE = 0x63  # "c"


FRAME_TERMINATOR = b"\n"

# ----------------------------------------------------------------------------
# Close codes
# ----------------------------------------------------------------------------


class CloseCode(IntEnum):
    """Well-known close codes carried by CLOSE frames."""

    CONNECTION_INTERRUPTED = 1002
    ANOTHER_CONNECTION = 2010
    GO_AWAY = 3000


DEFAULT_CLOSE_REASON = "Go away!"

# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------

INFO_PATH = "info"
XHR_PATH = "xhr"  # handshake and polls
XHR_SEND_PATH = "xhr_send"

CONTENT_TYPE = "text/plain;charset=UTF-8"

# ----------------------------------------------------------------------------
# Session identifiers
# ----------------------------------------------------------------------------

SERVER_ID_DIGITS = 3
SESSION_ID_LENGTH = 20
SESSION_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

# ----------------------------------------------------------------------------
# Timing (seconds)
# ----------------------------------------------------------------------------

# Servers hold a poll for up to 25 s before answering with a heartbeat
DEFAULT_TIMEOUT = 30.0
HEARTBEAT_INTERVAL = 25.0
DEFAULT_RETRY_BACKOFF = 0.5
CANCEL_CHECK_INTERVAL = 0.05
