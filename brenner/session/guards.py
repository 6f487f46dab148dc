"""Transition guards: pure predicates over (session, event)."""

from collections.abc import Callable

from brenner.core.models import Event, Phase, Session

from .phases import is_valid_transition

Guard = Callable[[Session, Event], bool]


def has_primary_hypothesis(session: Session, event: Event | None = None) -> bool:
    return session.primary_hypothesis is not None


def has_predictions(session: Session, event: Event | None = None) -> bool:
    """Primary card lists at least one prediction and one falsifying observation."""
    card = session.primary_hypothesis
    return card is not None and bool(card.predictions_if_true) and bool(card.impossible_if_true)


def has_agent_responses(session: Session, event: Event | None = None) -> bool:
    return len(session.agent_responses) > 0


def has_evidence(session: Session, event: Event | None = None) -> bool:
    return len(session.evidence_ledger) > 0


def _request_status(request) -> str | None:
    if isinstance(request, dict):
        return request.get("status")
    return getattr(request, "status", None)


def has_pending_agent_requests(session: Session, event: Event | None = None) -> bool:
    return any(_request_status(r) == "pending" for r in session.pending_agent_requests)


def can_transition_to(target: Phase) -> Guard:
    def guard(session: Session, event: Event | None = None) -> bool:
        return is_valid_transition(session.phase, target)

    guard.__name__ = f"can_transition_to_{target.value}"
    return guard
