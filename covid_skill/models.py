from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

RESPONSE_VERSION = "1.0"

LAUNCH_REQUEST = "LaunchRequest"
INTENT_REQUEST = "IntentRequest"
SESSION_ENDED_REQUEST = "SessionEndedRequest"


class RequestParseError(ValueError):
    pass


@dataclass(slots=True)
class Slot:
    name: str
    value: str | None = None


@dataclass(slots=True)
class Intent:
    name: str
    slots: dict[str, Slot] = field(default_factory=dict)

    def slot_value(self, name: str) -> str:
        slot = self.slots.get(name)
        if slot is None or slot.value is None:
            return ""
        return slot.value


@dataclass(slots=True)
class LaunchRequest:
    request_id: str
    timestamp: str
    locale: str
    type: str = LAUNCH_REQUEST


@dataclass(slots=True)
class IntentRequest:
    request_id: str
    timestamp: str
    locale: str
    intent: Intent
    type: str = INTENT_REQUEST


@dataclass(slots=True)
class SessionEndedRequest:
    request_id: str
    timestamp: str
    locale: str
    reason: str = ""
    type: str = SESSION_ENDED_REQUEST


@dataclass(slots=True)
class UnsupportedRequest:
    request_id: str
    timestamp: str
    locale: str
    type: str = ""


Request = Union[LaunchRequest, IntentRequest, SessionEndedRequest, UnsupportedRequest]


@dataclass(slots=True)
class SkillRequest:
    version: str
    application_id: str | None
    request: Request


def _section(parent: Any, key: str) -> dict[str, Any]:
    value = parent.get(key) if isinstance(parent, dict) else None
    return value if isinstance(value, dict) else {}


def _application_id(payload: dict[str, Any]) -> str | None:
    app_id = _section(_section(payload, "session"), "application").get("applicationId")
    if app_id:
        return str(app_id)
    system = _section(_section(payload, "context"), "System")
    app_id = _section(system, "application").get("applicationId")
    return str(app_id) if app_id else None


def _parse_intent(raw: Any) -> Intent:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise RequestParseError("intent_missing")
    slots: dict[str, Slot] = {}
    for key, slot in _section(raw, "slots").items():
        if not isinstance(slot, dict):
            continue
        value = slot.get("value")
        slots[key] = Slot(name=str(slot.get("name") or key), value=None if value is None else str(value))
    return Intent(name=str(raw["name"]), slots=slots)


def parse_skill_request(payload: Any) -> SkillRequest:
    if not isinstance(payload, dict):
        raise RequestParseError("payload_not_object")
    raw = payload.get("request")
    if not isinstance(raw, dict) or not raw.get("type"):
        raise RequestParseError("request_missing")

    kind = str(raw["type"])
    common = {
        "request_id": str(raw.get("requestId", "")),
        "timestamp": str(raw.get("timestamp", "")),
        "locale": str(raw.get("locale", "")),
    }
    request: Request
    if kind == LAUNCH_REQUEST:
        request = LaunchRequest(**common)
    elif kind == INTENT_REQUEST:
        request = IntentRequest(intent=_parse_intent(raw.get("intent")), **common)
    elif kind == SESSION_ENDED_REQUEST:
        request = SessionEndedRequest(reason=str(raw.get("reason", "")), **common)
    else:
        request = UnsupportedRequest(type=kind, **common)

    return SkillRequest(
        version=str(payload.get("version", RESPONSE_VERSION)),
        application_id=_application_id(payload),
        request=request,
    )


@dataclass(slots=True)
class SkillResponse:
    speech: str | None = None
    reprompt: str | None = None
    should_end_session: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.speech is not None:
            body["outputSpeech"] = _plain_text(self.speech)
        if self.reprompt is not None:
            body["reprompt"] = {"outputSpeech": _plain_text(self.reprompt)}
        if self.should_end_session is not None:
            body["shouldEndSession"] = self.should_end_session
        return {"version": RESPONSE_VERSION, "response": body}


def _plain_text(text: str) -> dict[str, str]:
    return {"type": "PlainText", "text": text}


def ask(speech: str, reprompt: str) -> SkillResponse:
    return SkillResponse(speech=speech, reprompt=reprompt, should_end_session=False)


def tell(speech: str) -> SkillResponse:
    return SkillResponse(speech=speech, should_end_session=True)


def empty() -> SkillResponse:
    return SkillResponse()
