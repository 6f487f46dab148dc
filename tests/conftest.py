import json
from itertools import count

import httpx
import pytest

from brenner.core.models import Message
from brenner.lib import config, paths
from brenner.mail import MailClient

ENV_VARS = (
    "AGENT_MAIL_BASE_URL",
    "AGENT_MAIL_PATH",
    "AGENT_MAIL_BEARER_TOKEN",
    "BRENNER_PROJECT",
    "BRENNER_SENDER",
    "BRENNER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point ~/.brenner at a temp dir and clear every setting the environment could leak in.

    Yields the config directory; tests write config.yaml into it as needed.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    dot_brenner = tmp_path / ".brenner"
    dot_brenner.mkdir()
    monkeypatch.setattr(paths, "dot_brenner", lambda: dot_brenner)
    config.clear_cache()
    yield dot_brenner
    config.clear_cache()


def minute(n: int) -> str:
    return f"2025-01-01T00:{n:02d}:00Z"


@pytest.fixture
def make_message():
    """Build a Message with sensible defaults; `at` is minutes past midnight."""

    def _make(id, subject, at=0, sender=None, to=(), **kwargs):
        return Message(
            id=id,
            subject=subject,
            created_ts=minute(at),
            thread_id=kwargs.pop("thread_id", "T1"),
            sender=sender,
            to=tuple(to),
            **kwargs,
        )

    return _make


class FakeMailServer:
    """In-memory Agent Mail endpoint for httpx.MockTransport.

    Resources are keyed by URI without the query string. Tools are either a
    canned result or a callable taking the call arguments. `send_message`
    assigns increasing message ids unless overridden. `reject_when(name, arguments)`
    turns a tool call into a remote error.
    """

    def __init__(self):
        self.requests: list[dict] = []
        self.headers: list[httpx.Headers] = []
        self.resources: dict[str, object] = {}
        self.tools: dict[str, object] = {}
        self.sent: list[dict] = []
        self.reject_when = None
        self._ids = count(100)

    def _send_message(self, arguments):
        message_id = next(self._ids)
        return {"deliveries": [{"project": arguments["project_key"], "payload": {"id": message_id}}]}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        self.headers.append(request.headers)
        method, params = body["method"], body.get("params") or {}

        if method == "resources/read":
            uri = params["uri"]
            key = uri.split("?", 1)[0]
            if key not in self.resources:
                return self._reply(body, error={"code": -32002, "message": f"unknown {key}"})
            text = json.dumps(self.resources[key])
            return self._reply(body, result={"contents": [{"uri": uri, "text": text}]})

        if method == "tools/call":
            name, arguments = params["name"], params.get("arguments") or {}
            if self.reject_when is not None and self.reject_when(name, arguments):
                return self._reply(body, error={"code": -32000, "message": f"{name} rejected"})
            if name == "send_message":
                self.sent.append(arguments)
            tool = self.tools.get(name, self._send_message if name == "send_message" else None)
            if tool is None:
                return self._reply(body, error={"code": -32601, "message": f"no tool {name}"})
            return self._reply(body, result=tool(arguments) if callable(tool) else tool)

        if method == "tools/list":
            return self._reply(body, result={"tools": [{"name": n} for n in self.tools]})
        return self._reply(body, error={"code": -32601, "message": f"no method {method}"})

    @staticmethod
    def _reply(body, result=None, error=None) -> httpx.Response:
        envelope = {"protocolVersion": body["protocolVersion"], "id": body["id"]}
        if error is not None:
            envelope["error"] = error
        else:
            envelope["result"] = result
        return httpx.Response(200, json=envelope)

    def set_thread(self, thread_id: str, messages: list[dict], project: str = "proj"):
        self.resources[f"resource://thread/{thread_id}"] = {
            "project": project,
            "thread_id": thread_id,
            "messages": messages,
        }

    def client(self) -> MailClient:
        return MailClient(base_url="http://mail.test", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def mail_server():
    return FakeMailServer()


@pytest.fixture
def mail_client(mail_server):
    client = mail_server.client()
    yield client
    client.close()
