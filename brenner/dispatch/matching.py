"""Match inbound thread messages to outstanding dispatch tasks.

Signals, strongest first:

1. reply link: the message's `reply_to` is a task's outbound message id
2. subject role: a `DELTA[..]`/`TRIBUNAL[..]` tag or role name in the subject
3. single ambiguous fallback, see `match_single_ambiguous`
"""

from dataclasses import replace

from brenner.core.models import (
    TERMINAL_TASK_STATUSES,
    AgentDispatch,
    AgentResponse,
    AgentTask,
    Message,
    TaskStatus,
)
from brenner.protocol.subjects import role_from_subject


def _agent_key(name: str | None) -> str:
    return " ".join(name.split()).lower() if name else ""


def _receive(task: AgentTask, message: Message) -> AgentTask:
    response = AgentResponse(
        role=task.role,
        content=message.body_md or "",
        received_at=message.created_ts,
        message_id=message.id,
        agent_name=message.sender,
    )
    return replace(task, status=TaskStatus.RECEIVED, response=response, error=None)


def _has_signal(message: Message, outbound_ids: set[int]) -> bool:
    if message.reply_to is not None and message.reply_to in outbound_ids:
        return True
    return role_from_subject(message.subject) is not None


def match_single_ambiguous(
    open_tasks: list[int], unmatched: list[Message], outbound_ids: set[int]
) -> tuple[int, Message] | None:
    """Pair the last open task with the last unattributable reply.

    Only fires when exactly one task is still waiting and exactly one reply
    carries no reply link and no role in its subject. This is a heuristic:
    a stray message in the thread can be misattributed.
    """
    if len(open_tasks) != 1:
        return None
    anonymous = [m for m in unmatched if not _has_signal(m, outbound_ids)]
    if len(anonymous) != 1:
        return None
    return open_tasks[0], anonymous[0]


def match_responses(
    dispatch: AgentDispatch,
    messages: list[Message],
    *,
    sender_name: str | None = None,
    allow_ambiguous: bool = True,
) -> AgentDispatch:
    """Return a new dispatch with replies in `messages` attached to their tasks."""
    tasks = list(dispatch.tasks)
    responses = list(dispatch.responses)
    outbound_ids = {task.message_id for task in tasks if task.message_id is not None}
    seen_ids = {response.message_id for response in responses}
    own_key = _agent_key(sender_name)

    candidates = [
        m
        for m in sorted(messages, key=lambda m: (m.timestamp, m.id))
        if m.body_md
        and m.id not in outbound_ids
        and m.id not in seen_ids
        and not (own_key and _agent_key(m.sender) == own_key)
    ]
    claimed: set[int] = set()

    def open_tasks() -> list[int]:
        return [i for i, task in enumerate(tasks) if task.status is TaskStatus.DISPATCHED]

    def claim(index: int, message: Message) -> None:
        tasks[index] = _receive(tasks[index], message)
        responses.append(tasks[index].response)
        claimed.add(message.id)

    for index in open_tasks():
        linked = tasks[index].message_id
        for message in candidates:
            if message.id not in claimed and linked is not None and message.reply_to == linked:
                claim(index, message)
                break

    for index in open_tasks():
        for message in candidates:
            if message.id in claimed:
                continue
            if message.reply_to is not None and message.reply_to in outbound_ids:
                continue
            if role_from_subject(message.subject) is tasks[index].role:
                claim(index, message)
                break

    if allow_ambiguous:
        unmatched = [m for m in candidates if m.id not in claimed]
        pair = match_single_ambiguous(open_tasks(), unmatched, outbound_ids)
        if pair is not None:
            claim(*pair)

    complete = all(task.status in TERMINAL_TASK_STATUSES for task in tasks)
    return replace(dispatch, tasks=tuple(tasks), responses=tuple(responses), complete=complete)
