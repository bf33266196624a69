from __future__ import annotations

import asyncio
import logging

from covid_skill.config import Settings
from covid_skill.handler import SkillHandler
from covid_skill.logging_setup import configure_logging
from covid_skill.stats import StatsClient
from covid_skill.validation import AlexaRequestValidator
from covid_skill.web import SkillWebServer

logger = logging.getLogger(__name__)


def build_handler(settings: Settings) -> SkillHandler:
    validator = AlexaRequestValidator(
        application_id=settings.skill_application_id,
        tolerance_sec=settings.timestamp_tolerance_sec,
        verify_signature=settings.verify_signature,
    )
    stats = StatsClient(
        url=settings.stats_url,
        header_marker=settings.stats_table_marker,
        timeout_sec=settings.fetch_timeout_sec,
    )
    return SkillHandler(validator, stats, default_locale=settings.default_locale)


async def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if not settings.verify_signature:
        logger.warning("signature_verification_disabled", extra={"action": "startup"})

    web_server = SkillWebServer(settings, build_handler(settings))
    await web_server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await web_server.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
