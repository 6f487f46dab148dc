"""Agent Mail transport: client, config resolution, event-stream parsing."""

from .client import (
    DEFAULT_BASE_URL,
    DEFAULT_PATH,
    PROTOCOL_VERSION,
    MailClient,
    MailConfig,
    delivered_message_id,
    normalize_path,
    resource_json,
)
from .sse import EventStreamParser, find_envelope, parse_envelope, scan_text

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_PATH",
    "EventStreamParser",
    "MailClient",
    "MailConfig",
    "PROTOCOL_VERSION",
    "delivered_message_id",
    "find_envelope",
    "normalize_path",
    "parse_envelope",
    "resource_json",
    "scan_text",
]
