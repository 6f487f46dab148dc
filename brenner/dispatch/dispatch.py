"""Tribunal dispatch: one request per role, sent and polled through Agent Mail."""

import logging
from dataclasses import replace

from brenner.core.models import (
    ALL_ROLES,
    AgentDispatch,
    AgentTask,
    HypothesisCard,
    Role,
    TaskStatus,
)
from brenner.errors import MailError
from brenner.lib import ids
from brenner.lib.timestamps import utc_now
from brenner.mail import MailClient, delivered_message_id

from .matching import match_responses
from .prompts import build_agent_prompt

log = logging.getLogger(__name__)

SUBJECT_PREFIX = "TRIBUNAL["
MISSING_MESSAGE_ID = "Failed to extract message ID from response"


def create_dispatch(
    session_id: str,
    hypothesis: HypothesisCard,
    operator_results: dict[str, list] | None = None,
    roles=ALL_ROLES,
) -> AgentDispatch:
    """New dispatch with one pending task per role. Nothing is sent yet."""
    return AgentDispatch(
        session_id=session_id,
        hypothesis=hypothesis,
        operator_results=dict(operator_results or {}),
        tasks=tuple(AgentTask(role=Role(role)) for role in roles),
        created_at=utc_now(),
    )


def generate_thread_id(session_id: str) -> str:
    return f"TRIBUNAL-{session_id}-{ids.base36(ids.now_ms())}"


def dispatch_subject(role: Role, hypothesis: HypothesisCard) -> str:
    return f"{SUBJECT_PREFIX}{Role(role).value}]: {hypothesis.id}"


def send_task(
    client: MailClient,
    dispatch: AgentDispatch,
    task: AgentTask,
    project_key: str,
    sender_name: str,
    recipients: list[str],
) -> AgentTask:
    """Send one task's request. Failures are recorded on the task, not raised."""
    try:
        result = client.send_message(
            project_key=project_key,
            sender_name=sender_name,
            to=recipients,
            subject=dispatch_subject(task.role, dispatch.hypothesis),
            body_md=build_agent_prompt(task.role, dispatch.hypothesis, dispatch.operator_results),
            thread_id=dispatch.thread_id or None,
            importance="normal",
            ack_required=False,
        )
    except MailError as e:
        log.warning(f"Dispatch to {task.role.value} failed: {e}")
        return replace(task, status=TaskStatus.ERROR, error=str(e))

    message_id = delivered_message_id(result)
    if message_id is None:
        log.warning(f"Dispatch to {task.role.value} returned no message id")
        return replace(task, status=TaskStatus.ERROR, error=MISSING_MESSAGE_ID)
    return replace(
        task, status=TaskStatus.DISPATCHED, message_id=message_id, dispatched_at=utc_now()
    )


def dispatch_all(
    client: MailClient,
    dispatch: AgentDispatch,
    project_key: str,
    sender_name: str,
    recipients: list[str],
) -> AgentDispatch:
    """Send every pending task. One failed send never blocks the others."""
    if not dispatch.thread_id:
        dispatch = replace(dispatch, thread_id=generate_thread_id(dispatch.session_id))

    tasks = tuple(
        send_task(client, dispatch, task, project_key, sender_name, recipients)
        if task.status is TaskStatus.PENDING
        else task
        for task in dispatch.tasks
    )
    dispatched = replace(dispatch, tasks=tasks)
    progress = dispatch_progress(dispatched)
    log.info(
        f"Dispatched {dispatch.thread_id}: {progress['dispatched']} sent, {progress['errors']} failed"
    )
    return dispatched


def poll_for_responses(
    client: MailClient,
    dispatch: AgentDispatch,
    project_key: str,
    sender_name: str | None = None,
    allow_ambiguous: bool = True,
) -> AgentDispatch:
    """Read the dispatch thread and attach any replies. Transport errors propagate."""
    if not dispatch.thread_id:
        return dispatch
    thread = client.read_thread(project_key, dispatch.thread_id, include_bodies=True)
    return match_responses(
        dispatch, thread.messages, sender_name=sender_name, allow_ambiguous=allow_ambiguous
    )


def dispatch_progress(dispatch: AgentDispatch) -> dict:
    counts = {
        "pending": 0,
        "dispatched": 0,
        "received": 0,
        "errors": 0,
        "total": len(dispatch.tasks),
        "complete": dispatch.complete,
    }
    keys = {
        TaskStatus.PENDING: "pending",
        TaskStatus.DISPATCHED: "dispatched",
        TaskStatus.RECEIVED: "received",
        TaskStatus.ERROR: "errors",
    }
    for task in dispatch.tasks:
        counts[keys[task.status]] += 1
    return counts


def available_agents(client: MailClient, project_key: str) -> list[str]:
    """Registered agents that could answer a dispatch. Empty when the mailbox is unreachable."""
    try:
        return client.list_agents(project_key)
    except MailError as e:
        log.warning(f"Agent availability check failed: {e}")
        return []
