# pickboard/core/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

ESPN_NFL_SITE = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    sports_api_url: str = ESPN_NFL_SITE
    exa_api_key: Optional[str] = None
    exa_max_results: int = 10
    discovery_max_age_hours: int = 24
    openrouter_api_key: Optional[str] = None
    openrouter_model: str = "x-ai/grok-4.1-fast:free"
    google_sheets_credentials: Optional[str] = None
    google_sheet_id: Optional[str] = None
    cron_schedule: str = "0 6 * * *"
    scheduler_enabled: bool = True
    fetch_retry_base_delay: float = 0.5
    log_level: str = "INFO"


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        sports_api_url=os.getenv("SPORTS_API_URL", ESPN_NFL_SITE).rstrip("/"),
        exa_api_key=os.getenv("EXA_API_KEY") or None,
        exa_max_results=int(os.getenv("EXA_MAX_RESULTS", "10")),
        discovery_max_age_hours=int(os.getenv("DISCOVERY_MAX_AGE_HOURS", "24")),
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
        openrouter_model=os.getenv("OPENROUTER_MODEL", "x-ai/grok-4.1-fast:free"),
        google_sheets_credentials=os.getenv("GOOGLE_SHEETS_CREDENTIALS") or None,
        google_sheet_id=os.getenv("GOOGLE_SHEET_ID") or None,
        cron_schedule=os.getenv("CRON_SCHEDULE", "0 6 * * *"),
        scheduler_enabled=_env_bool("SCHEDULER_ENABLED", True),
        fetch_retry_base_delay=float(os.getenv("FETCH_RETRY_BASE_DELAY", "0.5")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
