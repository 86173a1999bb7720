"""Runtime settings for the Qiktix backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_TICKETMASTER_BASE_URL = "https://app.ticketmaster.com/discovery/v2"


@dataclass(frozen=True)
class Settings:
    ticketmaster_api_key: str = ""
    ticketmaster_base_url: str = DEFAULT_TICKETMASTER_BASE_URL
    ticketmaster_country_code: str = "GB"
    ticketmaster_timeout: float = 15.0
    firebase_project_id: str | None = None
    firebase_service_account_path: str = "serviceAccount.json"
    search_debounce_seconds: float = 0.5
    log_level: str = "INFO"


def _load_env_file() -> None:
    # Load environment from mounted secret path if provided, else from local .env
    dotenv_path = os.getenv("DOTENV_PATH")
    if dotenv_path and os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)
    else:
        load_dotenv()


def load_settings() -> Settings:
    """Build Settings from the process environment (and .env, if present)."""
    _load_env_file()
    return Settings(
        ticketmaster_api_key=os.getenv("TICKETMASTER_API_KEY", ""),
        ticketmaster_base_url=os.getenv("TICKETMASTER_BASE_URL", DEFAULT_TICKETMASTER_BASE_URL).rstrip("/"),
        ticketmaster_country_code=os.getenv("TICKETMASTER_COUNTRY_CODE", "GB"),
        ticketmaster_timeout=float(os.getenv("TICKETMASTER_TIMEOUT", "15")),
        firebase_project_id=os.getenv("FIREBASE_PROJECT_ID") or os.getenv("GOOGLE_CLOUD_PROJECT"),
        firebase_service_account_path=os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH", "serviceAccount.json"),
        search_debounce_seconds=float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.5")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
