"""Tribunal dispatch and session kickoff over Agent Mail."""

from .dispatch import (
    available_agents,
    create_dispatch,
    dispatch_all,
    dispatch_progress,
    dispatch_subject,
    generate_thread_id,
    poll_for_responses,
    send_task,
)
from .kickoff import KickoffConfig, KickoffMessage, compose_kickoff_messages, send_kickoff
from .matching import match_responses, match_single_ambiguous
from .prompts import build_agent_prompt, format_hypothesis, format_operator_results

__all__ = [
    "KickoffConfig",
    "KickoffMessage",
    "available_agents",
    "build_agent_prompt",
    "compose_kickoff_messages",
    "create_dispatch",
    "dispatch_all",
    "dispatch_progress",
    "dispatch_subject",
    "format_hypothesis",
    "format_operator_results",
    "generate_thread_id",
    "match_responses",
    "match_single_ambiguous",
    "poll_for_responses",
    "send_kickoff",
    "send_task",
]
