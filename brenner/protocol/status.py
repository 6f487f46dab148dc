"""Thread status reconstruction.

The mailbox is an eventually-consistent log: messages may arrive in any order,
some may be missing, and senders may be unattributable. Status is therefore
never updated incrementally. `compute_status` replays the whole message set
every time, so the same set always yields the same snapshot.
"""

from collections.abc import Iterable
from dataclasses import replace

from brenner.core.models import (
    ALL_ROLES,
    AckStatus,
    ArtifactInfo,
    Message,
    MessageType,
    Role,
    RoleStatus,
    Thread,
    ThreadPhase,
    ThreadStats,
    ThreadStatus,
)
from brenner.lib.timestamps import EPOCH

from .roles import display_name
from .subjects import extract_version, parse_subject

RESPONSE_TYPES = frozenset(
    {
        MessageType.DELTA,
        MessageType.CLAIM,
        MessageType.HANDOFF,
        MessageType.BLOCKED,
        MessageType.QUESTION,
        MessageType.INFO,
    }
)


def _sort_key(message: Message):
    return (message.timestamp, message.id)


def _agent_key(name: str | None) -> str:
    if not name:
        return ""
    return " ".join(name.split()).lower()


def _append_unique(items: list[str], value: str | None) -> None:
    if value and value not in items:
        items.append(value)


def _resolve_acks(ordered: list[Message], kickoffs: list[Message]) -> AckStatus:
    """Any message from a recipient after the kickoff counts as its acknowledgement."""
    awaiting: list[str] = []
    awaiting_keys: set[str] = set()
    pending: list[Message] = []

    for kickoff in kickoffs:
        sent_at = kickoff.timestamp
        outstanding = False
        for recipient in kickoff.recipients:
            key = _agent_key(recipient)
            if not key:
                continue
            replied = any(
                _agent_key(message.sender) == key and message.timestamp > sent_at
                for message in ordered
            )
            if replied:
                continue
            outstanding = True
            if key not in awaiting_keys:
                awaiting_keys.add(key)
                awaiting.append(recipient.strip())
        if outstanding:
            pending.append(kickoff)

    return AckStatus(awaiting_from=awaiting, pending_count=len(awaiting), pending=pending)


def _infer_phase(
    kickoff: Message | None,
    latest_compiled: Message | None,
    critiques: list[Message],
    completed: int,
    expected: int,
) -> ThreadPhase:
    if kickoff is None:
        return ThreadPhase.NOT_STARTED
    if latest_compiled is not None:
        compiled_at = latest_compiled.timestamp
        if any(critique.timestamp > compiled_at for critique in critiques):
            return ThreadPhase.IN_CRITIQUE
        return ThreadPhase.COMPILED
    if completed == 0:
        return ThreadPhase.AWAITING_RESPONSES
    if completed < expected:
        return ThreadPhase.PARTIALLY_COMPLETE
    return ThreadPhase.AWAITING_COMPILATION


def compute_status(
    messages: Iterable[Message], expected_roles: Iterable[Role | str] = ALL_ROLES
) -> ThreadStatus:
    """Fold a thread's messages into a ThreadStatus snapshot. Never raises on odd input."""
    expected = tuple(Role(role) for role in expected_roles)
    ordered = sorted(messages, key=_sort_key)

    thread_id = next((m.thread_id for m in ordered if m.thread_id), None)
    roles = {role: RoleStatus(role=role) for role in ALL_ROLES}
    participants: list[str] = []
    kickoff: Message | None = None
    ack_kickoffs: list[Message] = []
    latest_compiled: Message | None = None
    deltas: list[Message] = []
    critiques: list[Message] = []
    compiled_count = 0
    total_acks = 0

    for message in ordered:
        parsed = parse_subject(message.subject)
        sender = message.sender.strip() if message.sender else None
        _append_unique(participants, sender)

        if parsed.type is MessageType.KICKOFF:
            if kickoff is None:
                kickoff = message
            if message.ack_required:
                ack_kickoffs.append(message)
        elif parsed.type is MessageType.DELTA:
            deltas.append(message)
            if parsed.role is None:
                continue
            role_status = roles[parsed.role]
            role_status.completed = True
            _append_unique(role_status.contributors, sender)
            latest = role_status.latest_delta
            if latest is None or message.timestamp > latest.timestamp:
                role_status.latest_delta = message
                role_status.last_updated = message.created_ts
        elif parsed.type is MessageType.COMPILED:
            compiled_count += 1
            if latest_compiled is None or message.timestamp >= latest_compiled.timestamp:
                latest_compiled = message
        elif parsed.type is MessageType.CRITIQUE:
            critiques.append(message)
        elif parsed.type is MessageType.ACK:
            total_acks += 1

    completed = sum(1 for role in expected if roles[role].completed)
    phase = _infer_phase(kickoff, latest_compiled, critiques, completed, len(expected))

    if latest_compiled is not None:
        boundary = latest_compiled.timestamp
    elif kickoff is not None:
        boundary = kickoff.timestamp
    else:
        boundary = EPOCH

    artifact = None
    if latest_compiled is not None:
        compiled_at = latest_compiled.timestamp
        contributors: list[str] = []
        for delta in deltas:
            if delta.timestamp < compiled_at:
                _append_unique(contributors, delta.sender.strip() if delta.sender else None)
        artifact = ArtifactInfo(
            message=latest_compiled,
            version=extract_version(latest_compiled.subject),
            contributors=contributors,
            compiled_at=latest_compiled.created_ts,
        )

    stats = ThreadStats(
        total_deltas=len(deltas),
        total_critiques=len(critiques),
        total_acks=total_acks,
        participants=participants,
        round_deltas=sum(1 for m in deltas if m.timestamp > boundary),
        round_critiques=sum(1 for m in critiques if m.timestamp > boundary),
    )

    return ThreadStatus(
        thread_id=thread_id,
        phase=phase,
        is_complete=all(roles[role].completed for role in expected),
        roles=roles,
        acks=_resolve_acks(ordered, ack_kickoffs),
        latest_artifact=artifact,
        kickoff=kickoff,
        message_count=len(ordered),
        round=compiled_count,
        stats=stats,
        expected_roles=expected,
    )


def compute_status_for_thread(
    thread: Thread, expected_roles: Iterable[Role | str] = ALL_ROLES
) -> ThreadStatus:
    status = compute_status(thread.messages, expected_roles)
    if status.thread_id is None and thread.thread_id:
        status = replace(status, thread_id=thread.thread_id)
    return status


def pending_roles(status: ThreadStatus) -> list[Role]:
    return [role for role in status.expected_roles if not status.roles[role].completed]


def needs_attention(status: ThreadStatus) -> bool:
    if status.acks.pending_count > 0:
        return True
    return status.phase not in (ThreadPhase.COMPILED, ThreadPhase.NOT_STARTED)


def is_waiting_for_role(messages: Iterable[Message], role: Role | str) -> bool:
    return not compute_status(messages).roles[Role(role)].completed


def agents_with_pending_acks(messages: Iterable[Message]) -> list[str]:
    return list(compute_status(messages).acks.awaiting_from)


def pending_agents(messages: Iterable[Message]) -> list[str]:
    """Participants that have not responded yet, in order of first appearance.

    A delta counts as a response, and so do claim, handoff, blocked, question
    and info messages. Kickoffs, acks, compiled artifacts and critiques do not.
    """
    ordered = sorted(messages, key=_sort_key)
    responded = {
        _agent_key(m.sender) for m in ordered if parse_subject(m.subject).type in RESPONSE_TYPES
    }
    participants: list[str] = []
    for message in ordered:
        sender = message.sender.strip() if message.sender else None
        if sender and _agent_key(sender) not in responded:
            _append_unique(participants, sender)
    return participants


def summary_line(status: ThreadStatus) -> str:
    responded = len(status.expected_roles) - len(pending_roles(status))
    parts = [
        status.phase.value.replace("_", " "),
        f"{responded}/{len(status.expected_roles)} roles",
    ]
    if status.round:
        parts.append(f"round {status.round}")
    if status.acks.pending_count:
        parts.append(f"{status.acks.pending_count} pending acks")
    return ", ".join(parts)


def status_summary(status: ThreadStatus) -> dict:
    """Compact view of a status for list displays."""
    responded = len(status.expected_roles) - len(pending_roles(status))
    return {
        "thread_id": status.thread_id,
        "phase": status.phase.value,
        "responded_role_count": responded,
        "total_role_count": len(status.expected_roles),
        "pending_acks": status.acks.pending_count,
        "has_artifact": status.latest_artifact is not None,
        "is_complete": status.is_complete,
        "round": status.round,
        "summary": summary_line(status),
    }


def format_status(status: ThreadStatus) -> str:
    lines = [
        f"Thread: {status.thread_id or '(no thread)'}",
        f"Phase: {status.phase.value.replace('_', ' ')} (round {status.round})",
        "",
        "Roles:",
    ]
    for role in status.expected_roles:
        role_status = status.roles[role]
        mark = "x" if role_status.completed else " "
        contributors = (
            f" ({', '.join(role_status.contributors)})" if role_status.contributors else ""
        )
        lines.append(f"  [{mark}] {display_name(role)}{contributors}")
    lines.append("")

    if status.acks.pending_count:
        lines.append(f"Awaiting ACK from: {', '.join(status.acks.awaiting_from)}")
        lines.append("")

    artifact = status.latest_artifact
    if artifact is not None:
        version = f"v{artifact.version}" if artifact.version is not None else "latest"
        lines.append(f"Compiled artifact: {version}")
        lines.append(f"  From: {artifact.sender or 'unknown'}")
        lines.append(f"  Contributors: {', '.join(artifact.contributors) or 'none'}")
        lines.append(f"  Compiled at: {artifact.compiled_at}")
        lines.append("")

    stats = status.stats
    lines.append(
        f"Stats: {stats.total_deltas} deltas, {stats.total_critiques} critiques, "
        f"{stats.total_acks} acks, {status.message_count} total"
    )
    lines.append(f"This round: {stats.round_deltas} deltas, {stats.round_critiques} critiques")
    lines.append(f"Participants: {', '.join(stats.participants) or 'none'}")
    return "\n".join(lines)
