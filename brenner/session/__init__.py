"""Session phase state machine: table, transition function, derived helpers."""

from .guards import (
    can_transition_to,
    has_agent_responses,
    has_evidence,
    has_pending_agent_requests,
    has_predictions,
    has_primary_hypothesis,
)
from .machine import (
    DEFAULT_NEXT_PRIORITY,
    MACHINE,
    StateConfig,
    TransitionDef,
    available_events,
    can_go_back,
    can_send,
    default_next_phase,
    is_complete,
    new_session,
    reachable_phases,
    transition,
)
from .phases import (
    ALLOWED_JUMPS,
    is_valid_transition,
    phase_description,
    phase_name,
    phase_symbol,
    simplified_phase,
)

__all__ = [
    "ALLOWED_JUMPS",
    "DEFAULT_NEXT_PRIORITY",
    "MACHINE",
    "StateConfig",
    "TransitionDef",
    "available_events",
    "can_go_back",
    "can_send",
    "can_transition_to",
    "default_next_phase",
    "has_agent_responses",
    "has_evidence",
    "has_pending_agent_requests",
    "has_predictions",
    "has_primary_hypothesis",
    "is_complete",
    "is_valid_transition",
    "new_session",
    "phase_description",
    "phase_name",
    "phase_symbol",
    "reachable_phases",
    "simplified_phase",
    "transition",
]
