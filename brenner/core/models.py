from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from brenner.lib.timestamps import parse_timestamp


class Role(str, Enum):
    HYPOTHESIS_GENERATOR = "hypothesis_generator"
    TEST_DESIGNER = "test_designer"
    ADVERSARIAL_CRITIC = "adversarial_critic"


ALL_ROLES: tuple[Role, ...] = (
    Role.HYPOTHESIS_GENERATOR,
    Role.TEST_DESIGNER,
    Role.ADVERSARIAL_CRITIC,
)


class MessageType(str, Enum):
    KICKOFF = "kickoff"
    DELTA = "delta"
    COMPILED = "compiled"
    CRITIQUE = "critique"
    ACK = "ack"
    CLAIM = "claim"
    HANDOFF = "handoff"
    BLOCKED = "blocked"
    QUESTION = "question"
    INFO = "info"
    UNKNOWN = "unknown"


def _recipients(value) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value if v is not None)


def _optional_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Message:
    """A mailbox message. Immutable once received."""

    id: int
    subject: str
    created_ts: str
    thread_id: str | None = None
    sender: str | None = None
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()
    ack_required: bool = False
    body_md: str | None = None
    reply_to: int | None = None
    importance: str = "normal"

    @property
    def timestamp(self) -> datetime:
        return parse_timestamp(self.created_ts)

    @property
    def recipients(self) -> tuple[str, ...]:
        return self.to + self.cc + self.bcc

    @classmethod
    def from_wire(cls, data: dict) -> "Message":
        reply_to = data.get("reply_to")
        if reply_to is None:
            reply_to = data.get("in_reply_to")
        return cls(
            id=_optional_int(data.get("id")) or 0,
            subject=str(data.get("subject") or ""),
            created_ts=str(data.get("created_ts") or ""),
            thread_id=data.get("thread_id"),
            sender=data.get("from") or data.get("sender") or None,
            to=_recipients(data.get("to")),
            cc=_recipients(data.get("cc")),
            bcc=_recipients(data.get("bcc")),
            ack_required=bool(data.get("ack_required", False)),
            body_md=data.get("body_md"),
            reply_to=_optional_int(reply_to),
            importance=str(data.get("importance") or "normal"),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["from"] = data.pop("sender")
        for key in ("to", "cc", "bcc"):
            data[key] = list(data[key])
        return data


@dataclass
class Thread:
    project: str
    thread_id: str
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_wire(cls, data: dict) -> "Thread":
        return cls(
            project=str(data.get("project") or ""),
            thread_id=str(data.get("thread_id") or ""),
            messages=[Message.from_wire(m) for m in data.get("messages") or []],
        )


@dataclass
class Inbox:
    project: str
    agent: str
    count: int = 0
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_wire(cls, data: dict) -> "Inbox":
        messages = [Message.from_wire(m) for m in data.get("messages") or []]
        return cls(
            project=str(data.get("project") or ""),
            agent=str(data.get("agent") or ""),
            count=int(data.get("count", len(messages)) or 0),
            messages=messages,
        )


@dataclass(frozen=True)
class ParsedSubject:
    type: MessageType
    role: Role | None = None
    shorthand: str | None = None


@dataclass
class RoleStatus:
    role: Role
    completed: bool = False
    contributors: list[str] = field(default_factory=list)
    latest_delta: Message | None = None
    last_updated: str | None = None


@dataclass
class AckStatus:
    awaiting_from: list[str] = field(default_factory=list)
    pending_count: int = 0
    pending: list[Message] = field(default_factory=list)


@dataclass
class ArtifactInfo:
    message: Message
    version: int | None
    contributors: list[str]
    compiled_at: str

    @property
    def message_id(self) -> int:
        return self.message.id

    @property
    def sender(self) -> str | None:
        return self.message.sender


class ThreadPhase(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_RESPONSES = "awaiting_responses"
    PARTIALLY_COMPLETE = "partially_complete"
    AWAITING_COMPILATION = "awaiting_compilation"
    COMPILED = "compiled"
    IN_CRITIQUE = "in_critique"


@dataclass
class ThreadStats:
    total_deltas: int = 0
    total_critiques: int = 0
    total_acks: int = 0
    participants: list[str] = field(default_factory=list)
    round_deltas: int = 0
    round_critiques: int = 0


@dataclass
class ThreadStatus:
    """Snapshot derived from a thread's messages. Same messages, same snapshot."""

    thread_id: str | None
    phase: ThreadPhase
    is_complete: bool
    roles: dict[Role, RoleStatus]
    acks: AckStatus
    latest_artifact: ArtifactInfo | None
    kickoff: Message | None
    message_count: int
    round: int
    stats: ThreadStats
    expected_roles: tuple[Role, ...] = ALL_ROLES

    def to_dict(self) -> dict:
        def message(m: Message | None) -> dict | None:
            return m.to_dict() if m else None

        return {
            "thread_id": self.thread_id,
            "phase": self.phase.value,
            "is_complete": self.is_complete,
            "round": self.round,
            "message_count": self.message_count,
            "expected_roles": [role.value for role in self.expected_roles],
            "roles": {
                role.value: {
                    "completed": status.completed,
                    "contributors": list(status.contributors),
                    "latest_delta": message(status.latest_delta),
                    "last_updated": status.last_updated,
                }
                for role, status in self.roles.items()
            },
            "acks": {
                "awaiting_from": list(self.acks.awaiting_from),
                "pending_count": self.acks.pending_count,
                "pending": [m.to_dict() for m in self.acks.pending],
            },
            "latest_artifact": (
                {
                    "message": self.latest_artifact.message.to_dict(),
                    "version": self.latest_artifact.version,
                    "contributors": list(self.latest_artifact.contributors),
                    "compiled_at": self.latest_artifact.compiled_at,
                }
                if self.latest_artifact
                else None
            ),
            "kickoff": message(self.kickoff),
            "stats": asdict(self.stats),
        }


class Phase(str, Enum):
    INTAKE = "intake"
    SHARPENING = "sharpening"
    LEVEL_SPLIT = "level_split"
    EXCLUSION_TEST = "exclusion_test"
    OBJECT_TRANSPOSE = "object_transpose"
    SCALE_CHECK = "scale_check"
    AGENT_DISPATCH = "agent_dispatch"
    SYNTHESIS = "synthesis"
    EVIDENCE_GATHERING = "evidence_gathering"
    REVISION = "revision"
    COMPLETE = "complete"


OPERATOR_PHASES: tuple[Phase, ...] = (
    Phase.LEVEL_SPLIT,
    Phase.EXCLUSION_TEST,
    Phase.OBJECT_TRANSPOSE,
    Phase.SCALE_CHECK,
)


@dataclass
class HypothesisCard:
    id: str
    statement: str
    mechanism: str = ""
    domain: list[str] = field(default_factory=list)
    predictions_if_true: list[str] = field(default_factory=list)
    predictions_if_false: list[str] = field(default_factory=list)
    impossible_if_true: list[str] = field(default_factory=list)
    confounds: list[dict] = field(default_factory=list)
    assumptions: list[str] = field(default_factory=list)
    version: int = 1
    created_at: str | None = None
    updated_at: str | None = None


def _empty_operator_applications() -> dict[str, list]:
    return {phase.value: [] for phase in OPERATOR_PHASES}


@dataclass
class Session:
    """A hypothesis workflow run. The state machine owns `phase`."""

    id: str
    phase: Phase | str = Phase.INTAKE
    created_at: str | None = None
    updated_at: str | None = None
    primary_hypothesis_id: str = ""
    hypothesis_cards: dict[str, HypothesisCard] = field(default_factory=dict)
    operator_applications: dict[str, list] = field(default_factory=_empty_operator_applications)
    pending_agent_requests: list[dict] = field(default_factory=list)
    agent_responses: list[Any] = field(default_factory=list)
    evidence_ledger: list[Any] = field(default_factory=list)
    research_question: str | None = None

    @property
    def primary_hypothesis(self) -> HypothesisCard | None:
        if not self.primary_hypothesis_id:
            return None
        return self.hypothesis_cards.get(self.primary_hypothesis_id)


class EventType(str, Enum):
    SUBMIT_HYPOTHESIS = "SUBMIT_HYPOTHESIS"
    REFINE = "REFINE"
    CONTINUE = "CONTINUE"
    SKIP_OPERATORS = "SKIP_OPERATORS"
    COMPLETE_OPERATOR = "COMPLETE_OPERATOR"
    SKIP_OPERATOR = "SKIP_OPERATOR"
    BACK = "BACK"
    DISPATCH_AGENTS = "DISPATCH_AGENTS"
    RESPONSES_RECEIVED = "RESPONSES_RECEIVED"
    SKIP_AGENTS = "SKIP_AGENTS"
    COMPLETE_SYNTHESIS = "COMPLETE_SYNTHESIS"
    ADD_EVIDENCE = "ADD_EVIDENCE"
    REVISE_HYPOTHESIS = "REVISE_HYPOTHESIS"
    SAVE_REVISION = "SAVE_REVISION"
    RESTART_OPERATORS = "RESTART_OPERATORS"
    COMPLETE_SESSION = "COMPLETE_SESSION"
    GO_TO_PHASE = "GO_TO_PHASE"


def _coerce(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass
class Event:
    """A state machine event. Unknown type or phase strings are kept as-is."""

    type: EventType | str
    hypothesis: HypothesisCard | None = None
    updates: dict | None = None
    result: Any = None
    evidence: Any = None
    phase: Phase | str | None = None

    def __post_init__(self):
        self.type = _coerce(EventType, self.type)
        self.phase = _coerce(Phase, self.phase)


@dataclass
class TransitionResult:
    success: bool
    new_state: Phase | str
    session: Session
    error: str | None = None


class TaskStatus(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    RECEIVED = "received"
    ERROR = "error"


TERMINAL_TASK_STATUSES = (TaskStatus.RECEIVED, TaskStatus.ERROR)


@dataclass(frozen=True)
class AgentResponse:
    role: Role
    content: str
    received_at: str
    message_id: int
    agent_name: str | None = None


@dataclass(frozen=True)
class AgentTask:
    role: Role
    status: TaskStatus = TaskStatus.PENDING
    message_id: int | None = None
    dispatched_at: str | None = None
    response: AgentResponse | None = None
    error: str | None = None


@dataclass(frozen=True)
class AgentDispatch:
    session_id: str
    hypothesis: HypothesisCard
    thread_id: str = ""
    operator_results: dict[str, list] = field(default_factory=dict)
    tasks: tuple[AgentTask, ...] = ()
    responses: tuple[AgentResponse, ...] = ()
    created_at: str | None = None
    complete: bool = False
