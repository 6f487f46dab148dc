"""Agent Mail client: one POST per call, buffered JSON or event-stream replies."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from brenner.core.models import Inbox, Thread
from brenner.errors import (
    MailDecodeError,
    MailHTTPError,
    MailMalformedError,
    MailNetworkError,
    MailRemoteError,
    MailStreamError,
)
from brenner.lib import config, ids

from .sse import EventStreamParser, find_envelope, scan_text

log = logging.getLogger(__name__)

PROTOCOL_VERSION = "2.0"
DEFAULT_BASE_URL = "http://127.0.0.1:8765"
DEFAULT_PATH = "/mcp/"
PAYLOAD_LIMIT = 400
ORCHESTRATOR_PROGRAM = "brenner-cli"

ACCEPT = "application/json, text/event-stream"


def normalize_path(path: str) -> str:
    parts = [part for part in path.split("/") if part]
    if not parts:
        return "/"
    return "/" + "/".join(parts) + "/"


def _truncate(text: str) -> str:
    return text[:PAYLOAD_LIMIT]


@dataclass(frozen=True)
class MailConfig:
    base_url: str = DEFAULT_BASE_URL
    path: str = DEFAULT_PATH
    bearer_token: str | None = None

    @classmethod
    def resolve(
        cls,
        base_url: str | None = None,
        path: str | None = None,
        bearer_token: str | None = None,
    ) -> MailConfig:
        """Resolve each field from argument, environment, config file, then default."""
        resolved_base = config.resolve(
            base_url, "AGENT_MAIL_BASE_URL", "agent_mail.base_url", DEFAULT_BASE_URL
        )
        resolved_path = config.resolve(path, "AGENT_MAIL_PATH", "agent_mail.path", DEFAULT_PATH)
        resolved_token = config.resolve(
            bearer_token, "AGENT_MAIL_BEARER_TOKEN", "agent_mail.bearer_token"
        )
        return cls(
            base_url=str(resolved_base).rstrip("/"),
            path=normalize_path(str(resolved_path)),
            bearer_token=str(resolved_token) if resolved_token else None,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.path}"


def _resource_uri(path: str, query: dict[str, Any]) -> str:
    params = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[key] = str(value)
    if not params:
        return f"resource://{path}"
    return f"resource://{path}?{urlencode(params)}"


def resource_json(result: Any) -> Any:
    """Decode the first text entry of a resources/read result."""
    if not isinstance(result, dict):
        raise MailMalformedError(
            f"Agent Mail malformed resources/read response: {_truncate(json.dumps(result))}"
        )
    contents = result.get("contents")
    if not isinstance(contents, list) or not contents:
        raise MailMalformedError(
            f"Agent Mail resources/read response missing contents: {_truncate(json.dumps(result))}"
        )
    first = contents[0]
    if not isinstance(first, dict) or not isinstance(first.get("text"), str):
        raise MailMalformedError(
            f"Agent Mail resources/read response missing text: {_truncate(json.dumps(result))}"
        )
    text = first["text"]
    try:
        return json.loads(text)
    except ValueError as e:
        raise MailDecodeError(
            f"Agent Mail resources/read returned non-JSON text: {_truncate(text)}", _truncate(text)
        ) from e


def delivered_message_id(result: Any) -> int | None:
    """Extract `deliveries[0].payload.id` from a send_message result."""
    if not isinstance(result, dict):
        return None
    deliveries = result.get("deliveries")
    if not isinstance(deliveries, list) or not deliveries:
        return None
    first = deliveries[0]
    payload = first.get("payload") if isinstance(first, dict) else None
    message_id = payload.get("id") if isinstance(payload, dict) else None
    if isinstance(message_id, bool) or not isinstance(message_id, int) or not message_id:
        return None
    return message_id


class MailClient:
    def __init__(
        self,
        config: MailConfig | None = None,
        *,
        base_url: str | None = None,
        path: str | None = None,
        bearer_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or MailConfig.resolve(base_url, path, bearer_token)
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> MailClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    @property
    def endpoint(self) -> str:
        return self.config.endpoint

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": ACCEPT, "Content-Type": "application/json"}
        if self.config.bearer_token:
            headers["Authorization"] = f"Bearer {self.config.bearer_token}"
        return headers

    def call(self, method: str, params: dict | None = None) -> Any:
        """Send one request and return the envelope's `result` (None when absent).

        Raises a MailError subclass naming the failure kind. No retries.
        """
        request_id = ids.uuid7()
        body = {
            "protocolVersion": PROTOCOL_VERSION,
            "id": request_id,
            "method": method,
            "params": params or {},
        }
        log.debug(f"Agent Mail call {method} ({request_id})")

        try:
            with self._http.stream(
                "POST", self.endpoint, json=body, headers=self._headers()
            ) as response:
                envelope = self._read_envelope(response)
        except httpx.RequestError as e:
            log.warning(f"Agent Mail network error on {method}: {e}")
            raise MailNetworkError(f"Agent Mail network error: {e}") from e

        error = envelope.get("error")
        if error is not None:
            payload = _truncate(json.dumps(error))
            log.warning(f"Agent Mail remote error on {method}: {payload}")
            raise MailRemoteError(f"Agent Mail remote error: {payload}", error, payload)
        return envelope.get("result")

    def _read_envelope(self, response: httpx.Response) -> dict:
        if not response.is_success:
            text = _truncate(_body_text(response))
            log.warning(f"Agent Mail HTTP {response.status_code}")
            raise MailHTTPError(
                f"Agent Mail HTTP {response.status_code}: {text}", response.status_code, text
            )
        content_type = response.headers.get("content-type", "")
        if "text/event-stream" in content_type.lower():
            return _read_event_stream(response)
        return _decode_envelope(_body_text(response))

    def tools_list(self) -> Any:
        return self.call("tools/list", {})

    def tools_call(self, name: str, arguments: dict) -> Any:
        return self.call("tools/call", {"name": name, "arguments": arguments})

    def resources_read(self, uri: str) -> Any:
        return self.call("resources/read", {"uri": uri})

    def read_inbox(
        self,
        project_key: str,
        agent_name: str,
        limit: int = 20,
        urgent_only: bool = False,
        include_bodies: bool = False,
        since_ts: str | None = None,
    ) -> Inbox:
        uri = _resource_uri(
            f"inbox/{agent_name}",
            {
                "project": project_key,
                "limit": limit,
                "urgent_only": urgent_only,
                "include_bodies": include_bodies,
                "since_ts": since_ts,
            },
        )
        return Inbox.from_wire(_expect_mapping(resource_json(self.resources_read(uri))))

    def read_thread(self, project_key: str, thread_id: str, include_bodies: bool = False) -> Thread:
        uri = _resource_uri(
            f"thread/{thread_id}", {"project": project_key, "include_bodies": include_bodies}
        )
        return Thread.from_wire(_expect_mapping(resource_json(self.resources_read(uri))))

    def send_message(
        self,
        project_key: str,
        sender_name: str,
        to: list[str],
        subject: str,
        body_md: str,
        thread_id: str | None = None,
        cc: list[str] | None = None,
        importance: str = "normal",
        ack_required: bool = False,
        reply_to: int | None = None,
    ) -> Any:
        arguments = {
            "project_key": project_key,
            "sender_name": sender_name,
            "to": list(to),
            "subject": subject,
            "body_md": body_md,
            "thread_id": thread_id,
            "importance": importance,
            "ack_required": ack_required,
        }
        if cc:
            arguments["cc"] = list(cc)
        if reply_to is not None:
            arguments["reply_to"] = reply_to
        return self.tools_call("send_message", arguments)

    def mark_message_read(self, project_key: str, agent_name: str, message_id: int) -> Any:
        return self.tools_call(
            "mark_message_read",
            {"project_key": project_key, "agent_name": agent_name, "message_id": message_id},
        )

    def acknowledge_message(self, project_key: str, agent_name: str, message_id: int) -> Any:
        return self.tools_call(
            "acknowledge_message",
            {"project_key": project_key, "agent_name": agent_name, "message_id": message_id},
        )

    def list_agents(self, project_key: str) -> list[str]:
        """Names of agents registered in the project, orchestrators excluded."""
        data = resource_json(self.resources_read(f"resource://agents/{project_key}"))
        agents = data.get("agents") if isinstance(data, dict) else None
        if not isinstance(agents, list):
            return []
        return [
            agent["name"]
            for agent in agents
            if isinstance(agent, dict)
            and agent.get("name")
            and agent.get("program") != ORCHESTRATOR_PROGRAM
        ]


def _body_text(response: httpx.Response) -> str:
    response.read()
    return response.text


def _decode_envelope(text: str) -> dict:
    try:
        data = json.loads(text) if text.strip() else None
    except ValueError as e:
        raise MailDecodeError(
            f"Agent Mail non-JSON response: {_truncate(text)}", _truncate(text)
        ) from e
    if not isinstance(data, dict):
        payload = _truncate(text)
        raise MailMalformedError(f"Agent Mail malformed JSON: {payload}", payload)
    return data


def _read_event_stream(response: httpx.Response) -> dict:
    if response.is_stream_consumed:
        envelope = scan_text(response.text)
        if envelope is None:
            raise _stream_exhausted(response.text)
        return envelope

    parser = EventStreamParser()
    head = ""
    for chunk in response.iter_text():
        if len(head) < PAYLOAD_LIMIT:
            head += chunk
        envelope = find_envelope(parser.feed(chunk))
        if envelope is not None:
            response.close()
            return envelope
    envelope = find_envelope(parser.flush())
    if envelope is None:
        raise _stream_exhausted(head)
    return envelope


def _stream_exhausted(text: str) -> MailStreamError:
    payload = _truncate(text)
    return MailStreamError(f"Agent Mail SSE response missing protocol payload: {payload}", payload)


def _expect_mapping(data: Any) -> dict:
    if not isinstance(data, dict):
        payload = _truncate(json.dumps(data))
        raise MailMalformedError(f"Agent Mail malformed JSON: {payload}", payload)
    return data
