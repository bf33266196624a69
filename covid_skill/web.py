from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

from covid_skill.config import Settings
from covid_skill.handler import SkillHandler

logger = logging.getLogger(__name__)


class SkillWebServer:
    def __init__(self, settings: Settings, handler: SkillHandler) -> None:
        self.settings = settings
        self.handler = handler
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.add_routes(
            [
                web.get("/healthz", self._healthz),
                web.post(self.settings.skill_path, self._skill),
            ]
        )
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host=self.settings.host, port=self.settings.port)
        await self._site.start()
        logger.info(
            "skill_web_started",
            extra={"action": "skill_web", "reason": f"{self.settings.host}:{self.settings.port}"},
        )

    async def stop(self) -> None:
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()

    async def _healthz(self, _: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _skill(self, request: web.Request) -> web.Response:
        raw_body = await request.text()
        result = await self.handler.handle(self._decode(raw_body), request.headers, raw_body)
        if result.body is None:
            return web.Response(status=result.status)
        return web.json_response(result.body, status=result.status)

    @staticmethod
    def _decode(raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None
