"""Subject-line micro-grammar.

    KICKOFF: <question>             DELTA[<role token>]: <summary>
    COMPILED: v<n> <title>          CRITIQUE: / ACK: / CLAIM: / HANDOFF:
    BLOCKED: / QUESTION: / INFO:

Prefixes are case-insensitive. Anything else is `unknown`, except the legacy
`ARTIFACT` prefix which still counts as a compiled artifact.
"""

import re

from brenner.core.models import ALL_ROLES, MessageType, ParsedSubject, Role

from .roles import normalize_token, role_for_token

KICKOFF_PATTERN = re.compile(r"^(KICKOFF:|\[[^\]]+\]\s+Brenner Loop kickoff\b)", re.IGNORECASE)
DELTA_PATTERN = re.compile(r"^DELTA\[([^\]]+)\]:", re.IGNORECASE)
LEGACY_ARTIFACT_PATTERN = re.compile(r"^ARTIFACT\b", re.IGNORECASE)
VERSION_PATTERN = re.compile(r"\bv(\d+)\b", re.IGNORECASE)

PREFIX_PATTERNS: tuple[tuple[MessageType, re.Pattern], ...] = tuple(
    (kind, re.compile(rf"^{kind.value.upper()}:", re.IGNORECASE))
    for kind in (
        MessageType.COMPILED,
        MessageType.CRITIQUE,
        MessageType.ACK,
        MessageType.CLAIM,
        MessageType.HANDOFF,
        MessageType.BLOCKED,
        MessageType.QUESTION,
        MessageType.INFO,
    )
)

REPLY_PREFIX = re.compile(r"^\s*(re|fwd?|fw)\s*:\s*", re.IGNORECASE)
ROLE_TAG_PATTERN = re.compile(r"\b(?:DELTA|TRIBUNAL)\[([^\]]+)\]", re.IGNORECASE)


def parse_subject(subject: str | None) -> ParsedSubject:
    text = (subject or "").strip()

    delta = DELTA_PATTERN.match(text)
    if delta:
        token = delta.group(1)
        return ParsedSubject(
            type=MessageType.DELTA, role=role_for_token(token), shorthand=normalize_token(token)
        )

    if KICKOFF_PATTERN.match(text):
        return ParsedSubject(type=MessageType.KICKOFF)

    for kind, pattern in PREFIX_PATTERNS:
        if pattern.match(text):
            return ParsedSubject(type=kind)

    if LEGACY_ARTIFACT_PATTERN.match(text):
        return ParsedSubject(type=MessageType.COMPILED)

    return ParsedSubject(type=MessageType.UNKNOWN)


def extract_version(subject: str | None) -> int | None:
    """`COMPILED: v3 artifact` -> 3, `COMPILED: final` -> None."""
    match = VERSION_PATTERN.search(subject or "")
    return int(match.group(1)) if match else None


def strip_reply_prefixes(subject: str) -> str:
    text = subject
    while True:
        stripped = REPLY_PREFIX.sub("", text, count=1)
        if stripped == text:
            return text.strip()
        text = stripped


def role_from_subject(subject: str | None) -> Role | None:
    """Recover the role a reply is about from its subject line.

    Looks for a `DELTA[...]` or `TRIBUNAL[...]` tag first, then a bare
    canonical role name such as `test_designer` or `test designer`.
    """
    if not subject:
        return None
    text = strip_reply_prefixes(subject)

    for match in ROLE_TAG_PATTERN.finditer(text):
        role = role_for_token(match.group(1))
        if role is not None:
            return role

    words = re.sub(r"[\s-]+", "_", text.lower())
    for role in ALL_ROLES:
        if re.search(rf"(?<![a-z0-9]){re.escape(role.value)}(?![a-z0-9])", words):
            return role
    return None
