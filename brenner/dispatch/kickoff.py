"""Session kickoff: one ack-required KICKOFF message per recipient.

Each recipient gets a role section. Roles come from an explicit roster when
one is given; otherwise they are guessed from the recipient name.
"""

import logging
from dataclasses import dataclass, field

from brenner.core.models import Role
from brenner.mail import MailClient, delivered_message_id
from brenner.protocol.roles import (
    DELTA_TAGS,
    ROLE_VOCABULARY,
    display_name,
    infer_role_from_program,
    normalize_token,
)

from .prompts import ROLE_BRIEFS

log = logging.getLogger(__name__)

SUBJECT_QUESTION_LIMIT = 60
FALLBACK_DISPLAY_NAME = "Research Collaborator"

ROLE_RULES: dict[Role, tuple[str, ...]] = {
    Role.HYPOTHESIS_GENERATOR: (
        'Always include a "third alternative" hypothesis (both others could be wrong)',
        "Never conflate different levels (program/interpreter, message/machine)",
        "Cite transcript anchors (§n) or evidence pack refs (EV-NNN) when referencing sources",
        "Output structured deltas, not narrative prose",
        "Apply ⊘ Level-Split before proposing any mechanism",
    ),
    Role.TEST_DESIGNER: (
        'Design tests that maximize "evidence per week" (likelihood ratio × speed / ambiguity)',
        "Include a potency check for every test (chastity vs impotence control)",
        "Score every test on the 4-dimension rubric (0-3 each)",
        "Consider object transposition: is there a better experimental system?",
        "Cite transcript (§n) or evidence pack (EV-NNN) when referencing prior results",
    ),
    Role.ADVERSARIAL_CRITIC: (
        "Calculate actual numbers (scale checks) before accepting any mechanism",
        "Quarantine anomalies explicitly; never sweep them under the carpet",
        'Kill theories when they "go ugly"; do not let attachment persist',
        'Propose real third alternatives, not just "both wrong"',
        "Cite transcript (§n) or evidence pack (EV-NNN) when grounding attacks",
    ),
}

DEFAULT_OUTPUTS: dict[Role, tuple[str, ...]] = {
    Role.HYPOTHESIS_GENERATOR: (
        "2-4 hypotheses including a third alternative",
        "Each with claim, mechanism, and transcript anchors",
    ),
    Role.TEST_DESIGNER: (
        "2-3 discriminative tests for each hypothesis pair",
        "Each with procedure, expected outcomes, potency check, and scores",
    ),
    Role.ADVERSARIAL_CRITIC: (
        "Scale checks for any quantitative claims",
        "Explicit anomaly quarantine for contradictions",
        "At least one real third alternative critique",
    ),
}


@dataclass
class KickoffConfig:
    thread_id: str
    research_question: str
    context: str
    excerpt: str
    recipients: list[str]
    recipient_roles: dict[str, Role | str] | None = None
    initial_hypotheses: str | None = None
    constraints: str | None = None
    requested_outputs: str | None = None
    memory_context: str | None = None


@dataclass(frozen=True)
class KickoffMessage:
    to: str
    subject: str
    body: str
    role: Role
    role_label: str
    ack_required: bool = True


@dataclass
class KickoffResult:
    messages: list[KickoffMessage] = field(default_factory=list)
    message_ids: dict[str, int | None] = field(default_factory=dict)


def _recipient_key(name: str) -> str:
    return name.strip().lower()


def roster(config: KickoffConfig) -> dict[str, Role] | None:
    """Validated explicit recipient -> role map, keyed by lower-cased name."""
    if config.recipient_roles is None:
        return None
    mapping: dict[str, Role] = {}
    for recipient, role in config.recipient_roles.items():
        key = _recipient_key(recipient)
        if not key:
            raise ValueError("Invalid recipient roles: empty recipient name")
        try:
            mapping[key] = Role(role)
        except ValueError as e:
            raise ValueError(f'Invalid role for "{recipient}": "{role}"') from e
    missing = [r for r in config.recipients if _recipient_key(r) not in mapping]
    if missing:
        raise ValueError(f"Missing recipient role mapping for: {', '.join(missing)}")
    return mapping


def guess_role(agent_name: str) -> tuple[Role, str]:
    """Role and label for an agent name. Unknown names become research collaborators."""
    role = ROLE_VOCABULARY.get(normalize_token(agent_name)) or infer_role_from_program(agent_name)
    if role is None:
        return Role.HYPOTHESIS_GENERATOR, FALLBACK_DISPLAY_NAME
    return role, display_name(role)


def kickoff_subject(config: KickoffConfig) -> str:
    question = config.research_question
    if len(question) > SUBJECT_QUESTION_LIMIT:
        question = question[:SUBJECT_QUESTION_LIMIT] + "..."
    return f"KICKOFF: [{config.thread_id}] {question}"


def _role_section(role: Role, label: str) -> list[str]:
    brief = ROLE_BRIEFS[role]
    lines = [
        f"## Your Role: {label}",
        "",
        brief.purpose,
        "",
        f"**Primary Operators**: {', '.join(brief.operators)}",
        "",
        "**You MUST**:",
    ]
    lines.extend(f"{n}. {rule}" for n, rule in enumerate(ROLE_RULES[role], start=1))
    return lines


def compose_body(config: KickoffConfig, role: Role, label: str, explicit=None) -> str:
    lines = [f"# Brenner Protocol Session: {config.thread_id}", ""]

    if explicit is not None:
        lines.append("## Roster (explicit)")
        for recipient in config.recipients:
            assigned = explicit.get(_recipient_key(recipient))
            lines.append(f"- {recipient}: {display_name(assigned) if assigned else 'Unassigned'}")
        lines.append("")

    lines.extend(_role_section(role, label))
    lines.append("")

    for title, text in (
        ("## Research Question", config.research_question),
        ("## Context", config.context),
        ("## Transcript Excerpt", config.excerpt),
    ):
        lines.extend([title, text, ""])

    if config.memory_context:
        lines.extend([config.memory_context.strip(), ""])
    if config.initial_hypotheses:
        lines.extend(["## Initial Hypotheses (Seed)", config.initial_hypotheses, ""])
    if config.constraints:
        lines.extend(["## Constraints", config.constraints, ""])

    lines.append("## Requested Outputs")
    if config.requested_outputs:
        lines.append(config.requested_outputs)
    else:
        lines.extend(f"- {item}" for item in DEFAULT_OUTPUTS[role])
    lines.append("")

    lines.append("## Response Format")
    lines.append(f"Reply to this thread with subject `DELTA[{DELTA_TAGS[role]}]: <description>`.")
    lines.append(
        "(Role tags: hypotheses → `gpt`/`codex`; tests → `opus`/`claude`; critique → `gemini`.)"
    )
    lines.append(
        "Include your reasoning as prose, followed by `## Deltas` with your structured contributions."
    )
    lines.append("")
    return "\n".join(lines)


def compose_kickoff_messages(config: KickoffConfig) -> list[KickoffMessage]:
    explicit = roster(config)
    subject = kickoff_subject(config)
    messages = []
    for recipient in config.recipients:
        if explicit is not None:
            role = explicit[_recipient_key(recipient)]
            label = display_name(role)
        else:
            role, label = guess_role(recipient)
        messages.append(
            KickoffMessage(
                to=recipient,
                subject=subject,
                body=compose_body(config, role, label, explicit),
                role=role,
                role_label=label,
            )
        )
    return messages


def send_kickoff(
    client: MailClient, config: KickoffConfig, project_key: str, sender_name: str
) -> KickoffResult:
    """Send each composed kickoff into the session thread. Mail errors propagate."""
    result = KickoffResult(messages=compose_kickoff_messages(config))
    for message in result.messages:
        sent = client.send_message(
            project_key=project_key,
            sender_name=sender_name,
            to=[message.to],
            subject=message.subject,
            body_md=message.body,
            thread_id=config.thread_id,
            ack_required=message.ack_required,
        )
        result.message_ids[message.to] = delivered_message_id(sent)
        log.info(f"Kickoff sent to {message.to} as {message.role.value}")
    return result


__all__ = [
    "KickoffConfig",
    "KickoffMessage",
    "KickoffResult",
    "compose_body",
    "compose_kickoff_messages",
    "guess_role",
    "kickoff_subject",
    "roster",
    "send_kickoff",
]
