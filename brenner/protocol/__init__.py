"""Brenner protocol read model: subject grammar, role vocabulary, thread status."""

from .roles import (
    DELTA_TAGS,
    DISPLAY_NAMES,
    ROLE_SHORTHANDS,
    display_name,
    infer_role_from_program,
    normalize_token,
    role_for_token,
)
from .status import (
    agents_with_pending_acks,
    compute_status,
    compute_status_for_thread,
    format_status,
    is_waiting_for_role,
    needs_attention,
    pending_agents,
    pending_roles,
    status_summary,
    summary_line,
)
from .subjects import extract_version, parse_subject, role_from_subject, strip_reply_prefixes

__all__ = [
    "DELTA_TAGS",
    "DISPLAY_NAMES",
    "ROLE_SHORTHANDS",
    "agents_with_pending_acks",
    "compute_status",
    "compute_status_for_thread",
    "display_name",
    "extract_version",
    "format_status",
    "infer_role_from_program",
    "is_waiting_for_role",
    "needs_attention",
    "normalize_token",
    "parse_subject",
    "pending_agents",
    "pending_roles",
    "role_for_token",
    "role_from_subject",
    "status_summary",
    "strip_reply_prefixes",
    "summary_line",
]
