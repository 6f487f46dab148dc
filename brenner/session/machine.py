"""Session phase state machine.

The machine is a table: phase -> event type -> candidate transitions. Every
query helper below derives its answer from the table, so adding a phase or
event only means editing MACHINE.
"""

from dataclasses import dataclass, field, replace

from brenner.core.models import OPERATOR_PHASES, Event, EventType, Phase, Session, TransitionResult
from brenner.lib.timestamps import utc_now

from . import actions
from .actions import Action
from .guards import (
    Guard,
    can_transition_to,
    has_agent_responses,
    has_predictions,
    has_primary_hypothesis,
)
from .phases import as_phase, label


@dataclass(frozen=True)
class TransitionDef:
    target: Phase
    guard: Guard | None = None
    action: Action | None = None

    def allows(self, session: Session, event: Event) -> bool:
        return self.guard is None or self.guard(session, event)


@dataclass(frozen=True)
class StateConfig:
    on: dict[EventType, tuple[TransitionDef, ...]] = field(default_factory=dict)
    final: bool = False


def _jumps(*targets: Phase) -> tuple[TransitionDef, ...]:
    return tuple(TransitionDef(target, guard=can_transition_to(target)) for target in targets)


def _operator_state(previous: Phase, current: Phase, following: Phase) -> StateConfig:
    index = OPERATOR_PHASES.index(current)
    return StateConfig(
        on={
            EventType.COMPLETE_OPERATOR: (
                TransitionDef(following, action=actions.complete_operator),
            ),
            EventType.SKIP_OPERATOR: (TransitionDef(following),),
            EventType.BACK: (TransitionDef(previous),),
            EventType.GO_TO_PHASE: _jumps(*OPERATOR_PHASES[index + 1 :], Phase.AGENT_DISPATCH),
        }
    )


MACHINE: dict[Phase, StateConfig] = {
    Phase.INTAKE: StateConfig(
        on={
            EventType.SUBMIT_HYPOTHESIS: (
                TransitionDef(Phase.SHARPENING, action=actions.submit_hypothesis),
            ),
        }
    ),
    Phase.SHARPENING: StateConfig(
        on={
            EventType.REFINE: (
                TransitionDef(Phase.SHARPENING, guard=has_primary_hypothesis, action=actions.refine),
            ),
            EventType.CONTINUE: (TransitionDef(Phase.LEVEL_SPLIT, guard=has_predictions),),
            EventType.SKIP_OPERATORS: (TransitionDef(Phase.AGENT_DISPATCH, guard=has_predictions),),
            EventType.GO_TO_PHASE: _jumps(
                Phase.LEVEL_SPLIT, Phase.EXCLUSION_TEST, Phase.AGENT_DISPATCH
            ),
        }
    ),
    Phase.LEVEL_SPLIT: _operator_state(Phase.SHARPENING, Phase.LEVEL_SPLIT, Phase.EXCLUSION_TEST),
    Phase.EXCLUSION_TEST: _operator_state(
        Phase.LEVEL_SPLIT, Phase.EXCLUSION_TEST, Phase.OBJECT_TRANSPOSE
    ),
    Phase.OBJECT_TRANSPOSE: _operator_state(
        Phase.EXCLUSION_TEST, Phase.OBJECT_TRANSPOSE, Phase.SCALE_CHECK
    ),
    Phase.SCALE_CHECK: _operator_state(
        Phase.OBJECT_TRANSPOSE, Phase.SCALE_CHECK, Phase.AGENT_DISPATCH
    ),
    Phase.AGENT_DISPATCH: StateConfig(
        on={
            EventType.DISPATCH_AGENTS: (TransitionDef(Phase.AGENT_DISPATCH),),
            EventType.RESPONSES_RECEIVED: (
                TransitionDef(Phase.SYNTHESIS, guard=has_agent_responses),
            ),
            EventType.SKIP_AGENTS: (TransitionDef(Phase.EVIDENCE_GATHERING),),
            EventType.BACK: (TransitionDef(Phase.SCALE_CHECK),),
            EventType.GO_TO_PHASE: _jumps(Phase.SYNTHESIS, Phase.EVIDENCE_GATHERING),
        }
    ),
    Phase.SYNTHESIS: StateConfig(
        on={
            EventType.COMPLETE_SYNTHESIS: (TransitionDef(Phase.EVIDENCE_GATHERING),),
            EventType.CONTINUE: (TransitionDef(Phase.EVIDENCE_GATHERING),),
            EventType.BACK: (TransitionDef(Phase.AGENT_DISPATCH),),
            EventType.COMPLETE_SESSION: (TransitionDef(Phase.COMPLETE),),
            EventType.GO_TO_PHASE: _jumps(Phase.EVIDENCE_GATHERING, Phase.REVISION, Phase.COMPLETE),
        }
    ),
    Phase.EVIDENCE_GATHERING: StateConfig(
        on={
            EventType.ADD_EVIDENCE: (
                TransitionDef(Phase.EVIDENCE_GATHERING, action=actions.add_evidence),
            ),
            EventType.REVISE_HYPOTHESIS: (TransitionDef(Phase.REVISION),),
            EventType.COMPLETE_SESSION: (TransitionDef(Phase.COMPLETE),),
            EventType.BACK: (TransitionDef(Phase.SYNTHESIS),),
            EventType.GO_TO_PHASE: _jumps(Phase.REVISION, Phase.SYNTHESIS),
        }
    ),
    Phase.REVISION: StateConfig(
        on={
            EventType.SAVE_REVISION: (TransitionDef(Phase.EVIDENCE_GATHERING),),
            EventType.RESTART_OPERATORS: (TransitionDef(Phase.LEVEL_SPLIT),),
            EventType.COMPLETE_SESSION: (TransitionDef(Phase.COMPLETE),),
            EventType.GO_TO_PHASE: _jumps(Phase.AGENT_DISPATCH, Phase.SYNTHESIS, Phase.COMPLETE),
        }
    ),
    Phase.COMPLETE: StateConfig(final=True),
}

DEFAULT_NEXT_PRIORITY: tuple[EventType, ...] = (
    EventType.CONTINUE,
    EventType.COMPLETE_OPERATOR,
    EventType.RESPONSES_RECEIVED,
    EventType.COMPLETE_SYNTHESIS,
    EventType.COMPLETE_SESSION,
)


def _state(session: Session) -> StateConfig | None:
    phase = as_phase(session.phase)
    return MACHINE.get(phase) if phase else None


def _failure(session: Session, error: str) -> TransitionResult:
    return TransitionResult(success=False, new_state=session.phase, session=session, error=error)


def _apply(session: Session, definition: TransitionDef, event: Event) -> TransitionResult:
    source = as_phase(session.phase)
    updated = replace(session, phase=definition.target, updated_at=utc_now())
    if definition.action is not None:
        updated = definition.action(updated, event, source)
    return TransitionResult(success=True, new_state=definition.target, session=updated)


def transition(session: Session, event: Event) -> TransitionResult:
    """Apply an event to a session. Failures come back as values, never exceptions.

    The input session is never mutated; on success the result carries a copy.
    """
    current = label(session.phase)
    state = _state(session)
    if state is None:
        return _failure(session, f"Unknown state: {current}")
    if state.final:
        return _failure(session, "Cannot transition from final state")

    event_name = event.type.value if isinstance(event.type, EventType) else str(event.type)

    if event.type is EventType.GO_TO_PHASE:
        jumps = state.on.get(EventType.GO_TO_PHASE)
        if not jumps:
            return _failure(session, f"GO_TO_PHASE not allowed from {current}")
        for definition in jumps:
            if definition.target == event.phase and definition.allows(session, event):
                return _apply(session, definition, event)
        return _failure(session, f"Cannot transition to {label(event.phase)} from {current}")

    definitions = state.on.get(event.type) if isinstance(event.type, EventType) else None
    if not definitions:
        return _failure(session, f"Event {event_name} not valid in state {current}")

    for definition in definitions:
        if definition.allows(session, event):
            return _apply(session, definition, event)
    return _failure(session, f"Guard failed for event {event_name} in state {current}")


def available_events(session: Session) -> list[EventType]:
    state = _state(session)
    if state is None or state.final:
        return []
    return list(state.on)


def reachable_phases(session: Session) -> list[Phase]:
    """Phases some event could reach right now, guards honoured."""
    state = _state(session)
    if state is None or state.final:
        return []
    phases: list[Phase] = []
    for event_type, definitions in state.on.items():
        probe = Event(type=event_type)
        for definition in definitions:
            if definition.allows(session, probe) and definition.target not in phases:
                phases.append(definition.target)
    return phases


def can_send(session: Session, event_type: EventType | str) -> bool:
    state = _state(session)
    if state is None or state.final:
        return False
    probe = Event(type=event_type)
    definitions = state.on.get(probe.type) if isinstance(probe.type, EventType) else None
    if not definitions:
        return False
    return any(definition.allows(session, probe) for definition in definitions)


def can_go_back(session: Session) -> bool:
    return can_send(session, EventType.BACK)


def is_complete(session: Session) -> bool:
    state = _state(session)
    return state is not None and state.final


def default_next_phase(session: Session) -> Phase | None:
    """Target of the first priority event whose guard passes, for a generic "next"."""
    state = _state(session)
    if state is None or state.final:
        return None
    for event_type in DEFAULT_NEXT_PRIORITY:
        probe = Event(type=event_type)
        for definition in state.on.get(event_type, ()):
            if definition.allows(session, probe):
                return definition.target
    return None


def new_session(session_id: str, research_question: str | None = None) -> Session:
    now = utc_now()
    return Session(
        id=session_id,
        phase=Phase.INTAKE,
        created_at=now,
        updated_at=now,
        research_question=research_question,
    )
