"""Websocket messages and their JSON payloads."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

Event = int

# Characters escaped in encoded payloads so they are safe to embed in HTML.
_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026",
                 "\u2028": "\\u2028", "\u2029": "\\u2029"}


class InvalidMessageError(ValueError):
    """The message's event has no known payload."""

    def __init__(self, message: str = "invalid message") -> None:
        super().__init__(message)


@dataclass
class PayloadOut:
    event: Event
    data: Any = None

    def to_json(self) -> bytes:
        """Encode compactly, leaving out ``data`` when it is None."""
        body: Dict[str, Any] = {"event": self.event}
        if self.data is not None:
            body["data"] = self.data
        try:
            text = json.dumps(body, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"failed to marshal payload: {exc}") from exc
        for char, escaped in _HTML_ESCAPES.items():
            text = text.replace(char, escaped)
        return text.encode("utf-8")


@dataclass
class PayloadIn:
    event: Event = 0
    data: Any = None


@dataclass
class OutgoingMessage:
    to_discord_ids: List[str] = field(default_factory=list)
    payload: bytes = b""


def new_outgoing(to_discord_ids, payload: PayloadOut) -> OutgoingMessage:
    return OutgoingMessage(list(to_discord_ids), payload.to_json())


def new_outgoing_base(to_discord_ids, event: Event) -> OutgoingMessage:
    return new_outgoing(to_discord_ids, PayloadOut(event))


def _decode_payload_in(raw: bytes) -> PayloadIn:
    prefix = "failed to unmarshal message as BasePayload"
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise ValueError(f"{prefix}: {exc}") from exc
    if body is None:
        return PayloadIn()
    if not isinstance(body, dict):
        raise ValueError(f"{prefix}: expected object, got {type(body).__name__}")
    event = body.get("event")
    if event is None:
        event = 0
    elif isinstance(event, bool) or not isinstance(event, int):
        raise ValueError(f"{prefix}: event must be an integer")
    return PayloadIn(event, body.get("data"))


# Event -> parser of that event's data.
_PARSERS: Dict[Event, Callable[[Any], Any]] = {}


@dataclass
class IncomingMessage:
    discord_id: str
    payload: bytes

    def parse(self) -> Any:
        """Decode the payload according to its event."""
        base = _decode_payload_in(self.payload)
        parser = _PARSERS.get(base.event)
        if parser is None:
            raise InvalidMessageError()
        return parser(base.data)