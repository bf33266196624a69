import asyncio
from typing import Any, Mapping

from covid_skill.handler import SkillHandler, normalize_location
from covid_skill.models import SkillRequest
from covid_skill.stats import StatsClient

_FRANCE_PAGE = (
    "<table><thead><tr><th>Country,<br>Other</th></tr></thead><tbody>"
    "<tr><td>Spain</td><td>1</td><td>1</td><td>1</td><td>1</td><td>1</td><td>1</td><td>1</td></tr>"
    "<tr><td>France</td><td>100</td><td>10</td><td>5</td><td>1</td><td>50</td><td>45</td><td>2</td></tr>"
    "</tbody></table>"
)


class _Validator:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls = 0

    async def validate(self, skill_request: SkillRequest, headers: Mapping[str, str], raw_body: str) -> bool:
        self.calls += 1
        return self.result


class _Fetcher:
    def __init__(self, html: str = _FRANCE_PAGE) -> None:
        self.html = html
        self.calls = 0

    async def __call__(self, url: str) -> str:
        self.calls += 1
        return self.html


class _ExplodingStats:
    async def describe(self, location: str) -> str:
        raise RuntimeError("stats backend exploded")


def _handler(validator: _Validator | None = None, fetcher: _Fetcher | None = None) -> SkillHandler:
    stats = StatsClient("https://stats.example/", "Country,Other", fetcher=fetcher or _Fetcher())
    return SkillHandler(validator or _Validator(), stats)


def _envelope(request: dict[str, Any]) -> dict[str, Any]:
    base = {"requestId": "req-1", "timestamp": "2020-03-20T10:00:00Z", "locale": "en-US"}
    base.update(request)
    return {"version": "1.0", "session": {"application": {"applicationId": "skill-1"}}, "request": base}


def _intent(name: str, slots: dict[str, Any] | None = None, locale: str = "en-US") -> dict[str, Any]:
    return _envelope({"type": "IntentRequest", "locale": locale, "intent": {"name": name, "slots": slots or {}}})


def test_location_intent_tells_country_statistics() -> None:
    fetcher = _Fetcher()
    payload = _intent("GetCovidDataIntent", {"location": {"name": "location", "value": " france "}})

    result = asyncio.run(_handler(fetcher=fetcher).handle(payload, {}))

    assert result.status == 200
    assert result.body == {
        "version": "1.0",
        "response": {
            "outputSpeech": {
                "type": "PlainText",
                "text": (
                    "FRANCE has 100 total cases, 10 new cases, 5 total deaths, 1 new deaths, "
                    "50 total recovered, 45 active cases and 2 serious cases of Coronavirus till now."
                ),
            },
            "shouldEndSession": True,
        },
    }
    assert fetcher.calls == 1


def test_launch_request_asks_with_italian_welcome() -> None:
    payload = _envelope({"type": "LaunchRequest", "locale": "it-IT"})

    result = asyncio.run(_handler().handle(payload, {}))

    assert result.status == 200
    assert result.body is not None
    response = result.body["response"]
    assert response["outputSpeech"]["text"] == "Benvenuto nella skill!"
    assert response["reprompt"]["outputSpeech"]["text"] == (
        "Se vuoi informazioni sulle mie funzionalità, prova a chiedermi aiuto"
    )
    assert response["shouldEndSession"] is False


def test_cancel_intent_takes_precedence_over_slots() -> None:
    fetcher = _Fetcher()
    payload = _intent("AMAZON.CancelIntent", {"location": {"name": "location", "value": "France"}})

    result = asyncio.run(_handler(fetcher=fetcher).handle(payload, {}))

    assert result.body is not None
    assert result.body["response"] == {
        "outputSpeech": {"type": "PlainText", "text": "Canceling..."},
        "shouldEndSession": True,
    }
    assert fetcher.calls == 0


def test_help_intent_asks_with_itself_as_reprompt() -> None:
    result = asyncio.run(_handler().handle(_intent("AMAZON.HelpIntent", locale="it-IT"), {}))

    assert result.body is not None
    response = result.body["response"]
    assert response["outputSpeech"]["text"] == "Aiuto..."
    assert response["reprompt"]["outputSpeech"]["text"] == "Aiuto..."
    assert response["shouldEndSession"] is False


def test_stop_intent_tells_goodbye() -> None:
    result = asyncio.run(_handler().handle(_intent("AMAZON.StopIntent"), {}))

    assert result.body is not None
    assert result.body["response"]["outputSpeech"]["text"] == "Bye bye!"
    assert result.body["response"]["shouldEndSession"] is True


def test_session_ended_returns_empty_acknowledgement() -> None:
    payload = _envelope({"type": "SessionEndedRequest", "reason": "USER_INITIATED"})

    result = asyncio.run(_handler().handle(payload, {}))

    assert result.status == 200
    assert result.body == {"version": "1.0", "response": {}}


def test_missing_slot_falls_through_to_apology() -> None:
    fetcher = _Fetcher()

    result = asyncio.run(_handler(fetcher=fetcher).handle(_intent("GetCovidDataIntent"), {}))

    assert result.body is not None
    assert result.body["response"]["outputSpeech"]["text"] == (
        "Sorry, I could not find the data you are looking for."
    )
    assert result.body["response"]["shouldEndSession"] is True
    assert fetcher.calls == 1


def test_unexpected_failure_speaks_error_and_keeps_session_open() -> None:
    handler = SkillHandler(_Validator(), _ExplodingStats())
    payload = _intent("GetCovidDataIntent", {"location": {"name": "location", "value": "Italy"}}, locale="it-IT")

    result = asyncio.run(handler.handle(payload, {}))

    assert result.status == 200
    assert result.body is not None
    assert result.body["response"] == {
        "outputSpeech": {
            "type": "PlainText",
            "text": (
                "Mi dispiace, si è verificato un errore imprevisto. "
                "Per favore, riprova di nuovo in seguito."
            ),
        },
        "shouldEndSession": False,
    }


def test_rejected_request_returns_400_without_fetching() -> None:
    fetcher = _Fetcher()
    validator = _Validator(result=False)
    payload = _intent("GetCovidDataIntent", {"location": {"name": "location", "value": "France"}})

    result = asyncio.run(_handler(validator=validator, fetcher=fetcher).handle(payload, {}))

    assert result.status == 400
    assert result.body is None
    assert validator.calls == 1
    assert fetcher.calls == 0


def test_unparseable_payload_returns_400_before_validation() -> None:
    validator = _Validator()

    result = asyncio.run(_handler(validator=validator).handle({"version": "1.0"}, {}))

    assert result.status == 400
    assert result.body is None
    assert validator.calls == 0


def test_unsupported_request_type_is_acknowledged() -> None:
    payload = _envelope({"type": "System.ExceptionEncountered"})

    result = asyncio.run(_handler().handle(payload, {}))

    assert result.status == 200
    assert result.body == {"version": "1.0", "response": {}}


def test_normalize_location_keeps_empty_values() -> None:
    assert normalize_location("") == ""
    assert normalize_location("  south korea ") == "SOUTH KOREA"


def test_default_locale_with_region_still_speaks_for_unsupported_locale() -> None:
    stats = StatsClient("https://stats.example/", "Country,Other", fetcher=_Fetcher())
    handler = SkillHandler(_Validator(), stats, default_locale="en-US")
    payload = _envelope({"type": "LaunchRequest", "locale": "fr-FR"})

    result = asyncio.run(handler.handle(payload, {}))

    assert result.status == 200
    assert result.body is not None
    assert result.body["response"]["outputSpeech"]["text"] == "Welcome to the skill!"


def test_error_path_uses_english_when_default_locale_is_unknown() -> None:
    handler = SkillHandler(_Validator(), _ExplodingStats(), default_locale="de-DE")
    payload = _intent("GetCovidDataIntent", {"location": {"name": "location", "value": "Italy"}}, locale="fr-FR")

    result = asyncio.run(handler.handle(payload, {}))

    assert result.status == 200
    assert result.body is not None
    assert result.body["response"]["outputSpeech"]["text"] == (
        "I'm sorry, there was an unexpected error. Please, try again later."
    )
    assert result.body["response"]["shouldEndSession"] is False


def test_malformed_nested_sections_are_handled_not_crashed() -> None:
    payload = {
        "session": "x",
        "request": {"type": "IntentRequest", "locale": "en-US", "intent": {"name": "AMAZON.StopIntent", "slots": []}},
    }

    result = asyncio.run(_handler().handle(payload, {}))

    assert result.status == 200
    assert result.body is not None
    assert result.body["response"]["outputSpeech"]["text"] == "Bye bye!"
