import json

import pytest
from typer.testing import CliRunner

from brenner.cli import app, commands

runner = CliRunner()

KICKOFF_ARGS = [
    "kickoff", "RS-3", "-Q", "q", "--context", "c", "--excerpt", "e", "--to", "BlueLake",
]


@pytest.fixture
def cli_server(mail_server, monkeypatch):
    monkeypatch.setattr(commands, "make_client", mail_server.client)
    mail_server.set_thread(
        "RS-1",
        [
            {
                "id": 1,
                "subject": "KICKOFF: [RS-1] Why?",
                "created_ts": "2025-01-01T00:00:00Z",
                "from": "Ops",
                "to": ["codex", "opus"],
                "ack_required": True,
                "thread_id": "RS-1",
            },
            {
                "id": 2,
                "subject": "DELTA[gpt]: hypotheses",
                "created_ts": "2025-01-01T00:01:00Z",
                "from": "codex",
                "thread_id": "RS-1",
                "body_md": "H1, H2, H3",
            },
        ],
    )
    return mail_server


def test_brenner_smoketest():
    result = runner.invoke(app)
    assert result.exit_code == 0
    assert "Brenner protocol tools" in result.output
    assert "kickoff" in result.output


def test_phases_smoketest():
    result = runner.invoke(app, ["phases"])
    assert result.exit_code == 0
    assert "level_split" in result.output
    assert "(final)" in result.output


def test_phases_json():
    result = runner.invoke(app, ["--json", "phases"])
    rows = json.loads(result.output)
    assert len(rows) == 11
    assert rows[0] == {
        "phase": "intake",
        "name": "Hypothesis Intake",
        "symbol": None,
        "stage": "intake",
        "jumps": ["sharpening"],
    }
    assert rows[-1]["jumps"] == []


def test_status_text(cli_server):
    result = runner.invoke(app, ["status", "RS-1", "-p", "proj"])
    assert result.exit_code == 0, result.output
    assert "Thread: RS-1" in result.output
    assert "Phase: partially complete (round 0)" in result.output
    assert "Awaiting ACK from: opus" in result.output


def test_status_json(cli_server):
    result = runner.invoke(app, ["--json", "status", "RS-1", "--project", "proj"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["phase"] == "partially_complete"
    assert data["roles"]["hypothesis_generator"]["completed"] is True
    assert data["acks"]["awaiting_from"] == ["opus"]


def test_project_from_environment(cli_server, monkeypatch):
    monkeypatch.setenv("BRENNER_PROJECT", "proj")
    result = runner.invoke(app, ["status", "RS-1"])
    assert result.exit_code == 0, result.output
    assert "project=proj" in cli_server.requests[0]["params"]["uri"]


def test_status_without_project(cli_server):
    result = runner.invoke(app, ["status", "RS-1"])
    assert result.exit_code == 1
    assert "Invalid input: no project key" in result.output


def test_status_mail_error(cli_server):
    result = runner.invoke(app, ["status", "RS-404", "-p", "proj"])
    assert result.exit_code == 1
    assert "Mail error: Agent Mail remote error" in result.output


def test_thread_listing(cli_server):
    result = runner.invoke(app, ["thread", "RS-1", "-p", "proj", "--bodies"])
    assert result.exit_code == 0, result.output
    assert "kickoff" in result.output
    assert "codex: DELTA[gpt]: hypotheses" in result.output
    assert "H1, H2, H3" in result.output


def test_inbox(cli_server):
    cli_server.resources["resource://inbox/codex"] = {
        "project": "proj",
        "agent": "codex",
        "messages": [
            {
                "id": 1,
                "subject": "KICKOFF: [RS-1] Why?",
                "created_ts": "2025-01-01T00:00:00Z",
                "from": "Ops",
                "ack_required": True,
            }
        ],
    }
    result = runner.invoke(app, ["inbox", "codex", "-p", "proj", "-n", "5"])
    assert result.exit_code == 0, result.output
    assert "Ops: KICKOFF: [RS-1] Why? [ack]" in result.output
    assert "limit=5" in cli_server.requests[0]["params"]["uri"]


def test_kickoff_json(cli_server):
    args = [
        "--json",
        "kickoff",
        "RS-2",
        "-Q",
        "Why do colonies stop growing?",
        "--context",
        "Plate assays",
        "--excerpt",
        "§7",
        "--to",
        "codex",
        "--to",
        "BlueLake",
        "--sender",
        "Ops",
        "-p",
        "proj",
    ]
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data == {
        "thread_id": "RS-2",
        "sent": [
            {
                "to": "codex",
                "role": "hypothesis_generator",
                "label": "Hypothesis Generator",
                "message_id": 100,
            },
            {
                "to": "BlueLake",
                "role": "hypothesis_generator",
                "label": "Research Collaborator",
                "message_id": 101,
            },
        ],
    }
    assert all(sent["ack_required"] for sent in cli_server.sent)


def test_kickoff_explicit_roles(cli_server, monkeypatch):
    monkeypatch.setenv("BRENNER_SENDER", "Ops")
    args = KICKOFF_ARGS + ["--role", "BlueLake=adversarial_critic", "-p", "proj"]
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    assert "Kickoff -> BlueLake (Adversarial Critic) #100" in result.output
    assert cli_server.sent[0]["sender_name"] == "Ops"


@pytest.mark.parametrize(
    "extra,message",
    [
        (["--role", "BlueLake"], "expected NAME=ROLE"),
        (["--role", "BlueLake=wizard"], "Invalid input"),
        (["--role", "Someone=test_designer"], "Missing recipient role mapping"),
    ],
)
def test_kickoff_bad_roles(cli_server, extra, message):
    args = KICKOFF_ARGS + ["--sender", "Ops", "-p", "proj", *extra]
    result = runner.invoke(app, args)
    assert result.exit_code == 1
    assert message in result.output
    assert cli_server.sent == []


def test_kickoff_requires_recipient(cli_server):
    args = ["kickoff", "RS-3", "-Q", "q", "--context", "c", "--excerpt", "e", "-p", "proj"]
    result = runner.invoke(app, args)
    assert result.exit_code == 1
    assert "at least one --to recipient" in result.output
