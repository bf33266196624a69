from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from covid_skill.locales import LanguageKey, LocaleSpeech, build_locale_store
from covid_skill.models import (
    IntentRequest,
    LaunchRequest,
    RequestParseError,
    SessionEndedRequest,
    SkillRequest,
    SkillResponse,
    ask,
    empty,
    parse_skill_request,
    tell,
)
from covid_skill.validation import RequestValidator

logger = logging.getLogger(__name__)

LOCATION_SLOT = "location"

CANCEL_INTENT = "AMAZON.CancelIntent"
HELP_INTENT = "AMAZON.HelpIntent"
STOP_INTENT = "AMAZON.StopIntent"


class StatsDescriber(Protocol):
    async def describe(self, location: str) -> str:
        ...


@dataclass(slots=True)
class HandlerResult:
    status: int
    body: dict[str, Any] | None = None


class SkillHandler:
    def __init__(
        self,
        validator: RequestValidator,
        stats: StatsDescriber,
        default_locale: str = "en",
    ) -> None:
        self.validator = validator
        self.stats = stats
        self.default_locale = default_locale

    async def handle(
        self,
        payload: Any,
        headers: Mapping[str, str],
        raw_body: str | None = None,
    ) -> HandlerResult:
        try:
            skill_request = parse_skill_request(payload)
        except RequestParseError as exc:
            logger.warning("request_unparseable", extra={"action": "parse", "reason": str(exc)})
            return HandlerResult(status=400)

        if raw_body is None:
            raw_body = json.dumps(payload)
        if not await self.validator.validate(skill_request, headers, raw_body):
            return HandlerResult(status=400)

        store = build_locale_store()
        locale = LocaleSpeech.for_request(store, skill_request.request.locale, self.default_locale)

        try:
            response = await self._dispatch(skill_request, locale)
        except Exception:
            logger.exception(
                "request_failed",
                extra={
                    "action": "dispatch",
                    "request_id": skill_request.request.request_id,
                    "request_type": skill_request.request.type,
                },
            )
            response = tell(await locale.get(LanguageKey.ERROR))
            response.should_end_session = False

        return HandlerResult(status=200, body=response.to_dict())

    async def _dispatch(self, skill_request: SkillRequest, locale: LocaleSpeech) -> SkillResponse:
        request = skill_request.request
        if isinstance(request, LaunchRequest):
            logger.info("session_started", extra={"action": "launch", "locale": locale.locale})
            return ask(
                await locale.get(LanguageKey.WELCOME),
                await locale.get(LanguageKey.WELCOME_REPROMPT),
            )
        if isinstance(request, IntentRequest):
            system_response = await self._handle_system_intent(request, locale)
            if system_response is not None:
                return system_response
            return await self._handle_location_intent(request)
        if isinstance(request, SessionEndedRequest):
            logger.info("session_ended", extra={"action": "session_end", "reason": request.reason or None})
            return empty()

        logger.info("request_type_unsupported", extra={"action": "dispatch", "request_type": request.type})
        return empty()

    @staticmethod
    async def _handle_system_intent(request: IntentRequest, locale: LocaleSpeech) -> SkillResponse | None:
        name = request.intent.name
        if name == CANCEL_INTENT:
            return tell(await locale.get(LanguageKey.CANCEL))
        if name == HELP_INTENT:
            message = await locale.get(LanguageKey.HELP)
            return ask(message, message)
        if name == STOP_INTENT:
            return tell(await locale.get(LanguageKey.STOP))
        return None

    async def _handle_location_intent(self, request: IntentRequest) -> SkillResponse:
        location = normalize_location(request.intent.slot_value(LOCATION_SLOT))
        logger.info(
            "slot_value_supplied",
            extra={"action": "intent", "intent": request.intent.name, "location": location},
        )
        sentence = await self.stats.describe(location)
        logger.info("stats_sentence_ready", extra={"action": "intent", "location": location})
        return tell(sentence)


def normalize_location(value: str) -> str:
    if not value:
        return value
    return value.strip().upper()
