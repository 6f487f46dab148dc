"""Incremental parser for `text/event-stream` response bodies.

Chunk boundaries from the network are arbitrary: a single event may span
several reads, and the last event may arrive without a trailing newline.
The parser keeps a text buffer, splits it into complete lines, and
accumulates `data:` lines until a blank line closes the event.
"""

import json
import re

DONE_SENTINEL = "[DONE]"
LINE_END = re.compile(r"\r\n|\r|\n")


class EventStreamParser:
    def __init__(self):
        self._buffer = ""
        self._data: list[str] = []

    def feed(self, chunk: str) -> list[str]:
        """Consume a chunk and return the data of every event it completed."""
        self._buffer += chunk
        events = []
        while True:
            match = LINE_END.search(self._buffer)
            if match is None:
                break
            # a lone trailing \r may be the first half of \r\n
            if match.group() == "\r" and match.end() == len(self._buffer):
                break
            line = self._buffer[: match.start()]
            self._buffer = self._buffer[match.end() :]
            event = self._line(line)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[str]:
        """End of stream: treat any partial line and pending data as complete."""
        events = []
        if self._buffer:
            line, self._buffer = self._buffer, ""
            event = self._line(line)
            if event is not None:
                events.append(event)
        event = self._dispatch()
        if event is not None:
            events.append(event)
        return events

    def _line(self, line: str) -> str | None:
        line = line.rstrip("\r")
        if not line:
            return self._dispatch()
        if line.startswith("data:"):
            value = line[5:]
            if value.startswith(" "):
                value = value[1:]
            self._data.append(value)
        # event:, id:, retry: and ":" comments carry nothing we need
        return None

    def _dispatch(self) -> str | None:
        if not self._data:
            return None
        data = "\n".join(self._data)
        self._data = []
        return data


def parse_envelope(data: str) -> dict | None:
    """Return the event data as an envelope if it carries `result` or `error`."""
    if data.strip() == DONE_SENTINEL:
        return None
    try:
        envelope = json.loads(data)
    except ValueError:
        return None
    if isinstance(envelope, dict) and ("result" in envelope or "error" in envelope):
        return envelope
    return None


def find_envelope(events: list[str]) -> dict | None:
    for data in events:
        envelope = parse_envelope(data)
        if envelope is not None:
            return envelope
    return None


def scan_text(text: str) -> dict | None:
    """Scan a fully-read event-stream body for the first envelope."""
    parser = EventStreamParser()
    return find_envelope(parser.feed(text)) or find_envelope(parser.flush())
