from dataclasses import replace

import pytest

from brenner.core.models import HypothesisCard, Role, TaskStatus
from brenner.dispatch import dispatch as dispatch_mod
from brenner.dispatch.dispatch import (
    MISSING_MESSAGE_ID,
    available_agents,
    create_dispatch,
    dispatch_all,
    dispatch_progress,
    dispatch_subject,
    generate_thread_id,
    poll_for_responses,
)
from brenner.errors import MailNetworkError


@pytest.fixture
def hypothesis():
    return HypothesisCard(
        id="H-3",
        statement="Flagella rotate by proton flux",
        predictions_if_true=["Uncouplers stop rotation"],
    )


def test_create_dispatch(hypothesis):
    results = {"level_split": [{"levels": []}]}
    dispatch = create_dispatch("S-1", hypothesis, results)
    assert [task.role for task in dispatch.tasks] == [
        Role.HYPOTHESIS_GENERATOR,
        Role.TEST_DESIGNER,
        Role.ADVERSARIAL_CRITIC,
    ]
    assert all(task.status is TaskStatus.PENDING for task in dispatch.tasks)
    assert dispatch.thread_id == ""
    assert dispatch.operator_results == results
    assert dispatch.operator_results is not results
    assert not dispatch.complete
    assert dispatch.created_at


def test_create_dispatch_subset_of_roles(hypothesis):
    dispatch = create_dispatch("S-1", hypothesis, roles=["adversarial_critic"])
    assert [task.role for task in dispatch.tasks] == [Role.ADVERSARIAL_CRITIC]


def test_generate_thread_id(monkeypatch):
    monkeypatch.setattr(dispatch_mod.ids, "now_ms", lambda: 36**3)
    assert generate_thread_id("S-1") == "TRIBUNAL-S-1-1000"


def test_dispatch_subject(hypothesis):
    assert dispatch_subject(Role.TEST_DESIGNER, hypothesis) == "TRIBUNAL[test_designer]: H-3"


def test_dispatch_all_sends_one_message_per_role(mail_server, mail_client, hypothesis):
    dispatch = dispatch_all(
        mail_client, create_dispatch("S-1", hypothesis), "proj", "Ops", ["BlueLake", "RedFox"]
    )
    assert dispatch.thread_id.startswith("TRIBUNAL-S-1-")
    assert [task.message_id for task in dispatch.tasks] == [100, 101, 102]
    assert all(task.status is TaskStatus.DISPATCHED for task in dispatch.tasks)
    assert all(task.dispatched_at for task in dispatch.tasks)

    subjects = [sent["subject"] for sent in mail_server.sent]
    assert subjects == [
        "TRIBUNAL[hypothesis_generator]: H-3",
        "TRIBUNAL[test_designer]: H-3",
        "TRIBUNAL[adversarial_critic]: H-3",
    ]
    first = mail_server.sent[0]
    assert first["to"] == ["BlueLake", "RedFox"]
    assert first["sender_name"] == "Ops"
    assert first["thread_id"] == dispatch.thread_id
    assert first["ack_required"] is False
    assert "## Your Role: Hypothesis Generator" in first["body_md"]


def test_dispatch_all_keeps_existing_thread(mail_server, mail_client, hypothesis):
    dispatch = replace(create_dispatch("S-1", hypothesis), thread_id="T-fixed")
    result = dispatch_all(mail_client, dispatch, "proj", "Ops", ["BlueLake"])
    assert result.thread_id == "T-fixed"
    assert {sent["thread_id"] for sent in mail_server.sent} == {"T-fixed"}


def test_one_failed_send_does_not_block_others(mail_server, mail_client, hypothesis):
    mail_server.reject_when = lambda name, args: "test_designer" in args.get("subject", "")
    dispatch = dispatch_all(mail_client, create_dispatch("S-1", hypothesis), "proj", "Ops", ["A"])
    statuses = {task.role: task.status for task in dispatch.tasks}
    assert statuses == {
        Role.HYPOTHESIS_GENERATOR: TaskStatus.DISPATCHED,
        Role.TEST_DESIGNER: TaskStatus.ERROR,
        Role.ADVERSARIAL_CRITIC: TaskStatus.DISPATCHED,
    }
    failed = dispatch.tasks[1]
    assert failed.message_id is None
    assert "send_message rejected" in failed.error


def test_missing_message_id_is_an_error(mail_server, mail_client, hypothesis):
    mail_server.tools["send_message"] = {"deliveries": []}
    dispatch = dispatch_all(mail_client, create_dispatch("S-1", hypothesis), "proj", "Ops", ["A"])
    assert {task.status for task in dispatch.tasks} == {TaskStatus.ERROR}
    assert {task.error for task in dispatch.tasks} == {MISSING_MESSAGE_ID}


def test_only_pending_tasks_are_sent(mail_server, mail_client, hypothesis):
    dispatch = create_dispatch("S-1", hypothesis)
    tasks = (replace(dispatch.tasks[0], status=TaskStatus.RECEIVED), *dispatch.tasks[1:])
    dispatch_all(mail_client, replace(dispatch, tasks=tasks), "proj", "Ops", ["A"])
    assert len(mail_server.sent) == 2


def test_dispatch_progress(hypothesis):
    dispatch = create_dispatch("S-1", hypothesis)
    tasks = (
        replace(dispatch.tasks[0], status=TaskStatus.RECEIVED),
        replace(dispatch.tasks[1], status=TaskStatus.ERROR),
        dispatch.tasks[2],
    )
    assert dispatch_progress(replace(dispatch, tasks=tasks)) == {
        "pending": 1,
        "dispatched": 0,
        "received": 1,
        "errors": 1,
        "total": 3,
        "complete": False,
    }


def test_poll_without_thread_is_noop(mail_server, mail_client, hypothesis):
    dispatch = create_dispatch("S-1", hypothesis)
    assert poll_for_responses(mail_client, dispatch, "proj") is dispatch
    assert mail_server.requests == []


def test_poll_transport_errors_propagate(hypothesis):
    class Unreachable:
        def read_thread(self, *args, **kwargs):
            raise MailNetworkError("Agent Mail network error: refused")

    dispatch = replace(create_dispatch("S-1", hypothesis), thread_id="T1")
    with pytest.raises(MailNetworkError):
        poll_for_responses(Unreachable(), dispatch, "proj")


def test_available_agents(mail_server, mail_client):
    mail_server.resources["resource://agents/proj"] = {
        "agents": [{"name": "BlueLake", "program": "codex-cli"}]
    }
    assert available_agents(mail_client, "proj") == ["BlueLake"]


def test_available_agents_unreachable(mail_client):
    assert available_agents(mail_client, "missing") == []
