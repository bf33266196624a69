from __future__ import annotations

from enum import Enum
from typing import Mapping


class LanguageKey(str, Enum):
    WELCOME = "Welcome"
    WELCOME_REPROMPT = "WelcomeReprompt"
    RESPONSE = "Response"
    CANCEL = "Cancel"
    HELP = "Help"
    STOP = "Stop"
    ERROR = "Error"


LocaleTable = Mapping[str, Mapping[LanguageKey, str]]


def build_locale_store() -> dict[str, dict[LanguageKey, str]]:
    return {
        "en": {
            LanguageKey.WELCOME: "Welcome to the skill!",
            LanguageKey.WELCOME_REPROMPT: (
                "You can ask help if you need instructions on how to interact with the skill"
            ),
            LanguageKey.RESPONSE: "This is just a sample answer",
            LanguageKey.CANCEL: "Canceling...",
            LanguageKey.HELP: "Help...",
            LanguageKey.STOP: "Bye bye!",
            LanguageKey.ERROR: "I'm sorry, there was an unexpected error. Please, try again later.",
        },
        "it": {
            LanguageKey.WELCOME: "Benvenuto nella skill!",
            LanguageKey.WELCOME_REPROMPT: (
                "Se vuoi informazioni sulle mie funzionalità, prova a chiedermi aiuto"
            ),
            LanguageKey.RESPONSE: "Questa è solo una risposta di prova",
            LanguageKey.CANCEL: "Sto annullando...",
            LanguageKey.HELP: "Aiuto...",
            LanguageKey.STOP: "A presto!",
            LanguageKey.ERROR: (
                "Mi dispiace, si è verificato un errore imprevisto. "
                "Per favore, riprova di nuovo in seguito."
            ),
        },
    }


FALLBACK_LOCALE = "en"


def _match(store: LocaleTable, locale: str | None) -> str | None:
    code = (locale or "").strip().lower().replace("_", "-")
    if code in store:
        return code
    language = code.split("-", 1)[0]
    if language in store:
        return language
    return None


def resolve_locale(store: LocaleTable, locale: str | None, default: str = FALLBACK_LOCALE) -> str:
    return _match(store, locale) or _match(store, default) or FALLBACK_LOCALE


class LocaleSpeech:
    def __init__(self, store: LocaleTable, locale: str) -> None:
        self.store = store
        self.locale = locale

    @classmethod
    def for_request(cls, store: LocaleTable, locale: str | None, default: str = FALLBACK_LOCALE) -> "LocaleSpeech":
        return cls(store, resolve_locale(store, locale, default))

    async def get(self, key: LanguageKey) -> str:
        return self.store[self.locale][key]
