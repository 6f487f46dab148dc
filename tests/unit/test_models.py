from brenner.core.models import Inbox, Message, Session, Thread


def test_message_from_wire():
    message = Message.from_wire(
        {
            "id": "12",
            "subject": "DELTA[gpt]: h",
            "created_ts": "2025-01-01T00:00:00Z",
            "thread_id": "T1",
            "from": "BlueLake",
            "to": ["Ops"],
            "cc": "GreenHill",
            "ack_required": 1,
            "in_reply_to": "7",
            "importance": "high",
        }
    )
    assert message.id == 12
    assert message.sender == "BlueLake"
    assert message.to == ("Ops",)
    assert message.cc == ("GreenHill",)
    assert message.bcc == ()
    assert message.recipients == ("Ops", "GreenHill")
    assert message.ack_required is True
    assert message.reply_to == 7
    assert message.importance == "high"
    assert message.body_md is None


def test_message_from_wire_tolerates_gaps():
    message = Message.from_wire({"sender": "RedFox", "reply_to": "soon"})
    assert message.id == 0
    assert message.subject == ""
    assert message.sender == "RedFox"
    assert message.reply_to is None
    assert message.importance == "normal"


def test_message_to_dict():
    message = Message(id=1, subject="s", created_ts="t", sender="A", to=("B",))
    data = message.to_dict()
    assert data["from"] == "A"
    assert "sender" not in data
    assert data["to"] == ["B"]


def test_thread_and_inbox_from_wire():
    raw = [{"id": 1, "subject": "a"}, {"id": 2, "subject": "b"}]
    thread = Thread.from_wire({"project": "p", "thread_id": "T", "messages": raw})
    assert [m.id for m in thread.messages] == [1, 2]
    inbox = Inbox.from_wire({"project": "p", "agent": "A", "messages": raw})
    assert inbox.count == 2
    assert Thread.from_wire({}).messages == []


def test_session_defaults():
    session = Session(id="S")
    assert session.primary_hypothesis is None
    assert set(session.operator_applications) == {
        "level_split",
        "exclusion_test",
        "object_transpose",
        "scale_check",
    }
    assert Session(id="S", primary_hypothesis_id="missing").primary_hypothesis is None
