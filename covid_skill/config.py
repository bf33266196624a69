from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_STATS_URL = "https://www.worldometers.info/coronavirus/"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 7071
    skill_path: str = "/api/skill"

    stats_url: str = DEFAULT_STATS_URL
    stats_table_marker: str = "Country,Other"
    fetch_timeout_sec: float = 10.0

    skill_application_id: Optional[str] = None
    verify_signature: bool = True
    timestamp_tolerance_sec: int = 150
    default_locale: str = "en"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "7071")),
            skill_path=os.environ.get("SKILL_PATH", "/api/skill"),
            stats_url=os.environ.get("STATS_URL", DEFAULT_STATS_URL),
            stats_table_marker=os.environ.get("STATS_TABLE_MARKER", "Country,Other"),
            fetch_timeout_sec=float(os.environ.get("FETCH_TIMEOUT_SEC", "10")),
            skill_application_id=os.environ.get("SKILL_APPLICATION_ID") or None,
            verify_signature=_parse_bool(os.environ.get("VERIFY_SIGNATURE", "true")),
            timestamp_tolerance_sec=int(os.environ.get("TIMESTAMP_TOLERANCE_SEC", "150")),
            default_locale=os.environ.get("DEFAULT_LOCALE", "en").strip().lower() or "en",
        )
