"""Status is a pure function of the message set."""

from hypothesis import given, settings
from hypothesis import strategies as st

from brenner.core.models import ALL_ROLES, Message
from brenner.protocol.status import compute_status

SUBJECTS = [
    "KICKOFF: what limits growth?",
    "DELTA[gpt]: hypotheses",
    "DELTA[opus]: tests",
    "DELTA[gemini]: attacks",
    "DELTA[unknown]: noise",
    "COMPILED: v1 artifact",
    "COMPILED: v2 artifact",
    "CRITIQUE: scale",
    "ACK: ok",
    "INFO: note",
    "chatter",
]
AGENTS = ["BlueLake", "GreenHill", "RedFox", None]


@st.composite
def messages(draw, min_size=0):
    size = draw(st.integers(min_value=min_size, max_value=12))
    ids = draw(st.lists(st.integers(1, 10_000), min_size=size, max_size=size, unique=True))
    result = []
    for message_id in ids:
        result.append(
            Message(
                id=message_id,
                subject=draw(st.sampled_from(SUBJECTS)),
                created_ts=f"2025-01-01T00:{draw(st.integers(0, 59)):02d}:00Z",
                thread_id="T1",
                sender=draw(st.sampled_from(AGENTS)),
                to=tuple(draw(st.lists(st.sampled_from(AGENTS[:3]), max_size=3))),
                ack_required=draw(st.booleans()),
            )
        )
    return result


@settings(max_examples=200)
@given(st.data())
def test_order_does_not_matter(data):
    original = data.draw(messages())
    shuffled = data.draw(st.permutations(original))
    assert compute_status(shuffled).to_dict() == compute_status(original).to_dict()


@given(messages())
def test_recomputing_is_stable(batch):
    assert compute_status(batch).to_dict() == compute_status(list(batch)).to_dict()


@given(messages(), st.sampled_from(["gpt", "opus", "gemini"]), st.integers(0, 59))
def test_more_deltas_never_uncomplete_a_role(batch, token, at):
    before = compute_status(batch)
    extra = Message(
        id=20_000,
        subject=f"DELTA[{token}]: late",
        created_ts=f"2025-01-01T00:{at:02d}:00Z",
        thread_id="T1",
        sender="Latecomer",
    )
    after = compute_status([*batch, extra])
    for role in ALL_ROLES:
        if before.roles[role].completed:
            assert after.roles[role].completed
    assert after.stats.total_deltas == before.stats.total_deltas + 1


@given(messages())
def test_counts_are_consistent(batch):
    status = compute_status(batch)
    assert status.message_count == len(batch)
    assert status.acks.pending_count == len(status.acks.awaiting_from)
    assert status.stats.round_deltas <= status.stats.total_deltas
    assert status.is_complete == all(status.roles[role].completed for role in ALL_ROLES)
