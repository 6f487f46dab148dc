"""Transition actions.

Each action gets the session already moved to the target phase, the event,
and the phase the event was sent from. Actions return a new session and never
mutate the one they were given.
"""

from collections.abc import Callable
from dataclasses import fields, replace

from brenner.core.models import Event, HypothesisCard, Phase, Session
from brenner.lib.timestamps import utc_now

Action = Callable[[Session, Event, Phase], Session]

_CARD_FIELDS = {f.name for f in fields(HypothesisCard)} - {"id"}


def submit_hypothesis(session: Session, event: Event, source: Phase) -> Session:
    card = event.hypothesis
    if card is None:
        return session
    return replace(
        session,
        primary_hypothesis_id=card.id,
        hypothesis_cards={**session.hypothesis_cards, card.id: card},
    )


def refine(session: Session, event: Event, source: Phase) -> Session:
    current = session.primary_hypothesis
    if current is None:
        return session
    updates = {k: v for k, v in (event.updates or {}).items() if k in _CARD_FIELDS}
    updates["updated_at"] = utc_now()
    card = replace(current, **updates)
    return replace(session, hypothesis_cards={**session.hypothesis_cards, card.id: card})


def complete_operator(session: Session, event: Event, source: Phase) -> Session:
    """Record the operator result under the phase that produced it."""
    applications = {key: list(value) for key, value in session.operator_applications.items()}
    applications.setdefault(source.value, []).append(event.result)
    return replace(session, operator_applications=applications)


def add_evidence(session: Session, event: Event, source: Phase) -> Session:
    return replace(session, evidence_ledger=[*session.evidence_ledger, event.evidence])
