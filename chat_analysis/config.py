"""
Runtime configuration for the chat analysis pipeline.

Values come from the process environment, optionally seeded from a `.env`
file at the project root. Both API tokens are required; everything else has
a default matching the production throttling of the Huggy API.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


HUGGY_BASE_URL = "https://api.huggy.io/v2/"

# Deliberately large: effectively "no cap" for realistic data volumes
MAX_PAGES = 1048

# Seconds to wait after each paginated request / before each chat
CHAT_PAGE_DELAY = 3.0
MESSAGE_PAGE_DELAY = 2.0
CHAT_PAUSE = 3.0

HTTP_MAX_RETRIES = 3

OPENAI_MODEL = "gpt-3.5-turbo-0125"

# Display-name fragment identifying the platform's own bot account
BOT_NAME_MARKER = "Treeunfe"

# Agent name used when no human agent is found in a chat
UNIDENTIFIED_AGENT = "Não identificado"

REPORT_PATH = "chats_analysis.csv"


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


class Settings(BaseModel):
    """Resolved settings for one pipeline run."""

    huggy_api_key: str
    openai_api_key: str
    huggy_base_url: str = HUGGY_BASE_URL
    max_pages: int = MAX_PAGES
    chat_page_delay: float = CHAT_PAGE_DELAY
    message_page_delay: float = MESSAGE_PAGE_DELAY
    chat_pause: float = CHAT_PAUSE
    http_max_retries: int = HTTP_MAX_RETRIES
    openai_model: str = OPENAI_MODEL
    bot_name_marker: str = BOT_NAME_MARKER
    report_path: str = REPORT_PATH
    isolate_chat_failures: bool = True
    log_level: str = "INFO"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(environ, name: str, cast, default):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def load_settings(environ=None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigError: If HUGGY_API_KEY or OPENAI_API_KEY is not set
    """
    environ = os.environ if environ is None else environ

    missing = [
        name for name in ("HUGGY_API_KEY", "OPENAI_API_KEY")
        if not (environ.get(name) or "").strip()
    ]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    return Settings(
        huggy_api_key=environ["HUGGY_API_KEY"].strip(),
        openai_api_key=environ["OPENAI_API_KEY"].strip(),
        huggy_base_url=environ.get("HUGGY_BASE_URL") or HUGGY_BASE_URL,
        max_pages=max(1, _env_number(environ, "MAX_PAGES", int, MAX_PAGES)),
        chat_page_delay=max(0.0, _env_number(environ, "CHAT_PAGE_DELAY", float, CHAT_PAGE_DELAY)),
        message_page_delay=max(0.0, _env_number(environ, "MESSAGE_PAGE_DELAY", float, MESSAGE_PAGE_DELAY)),
        chat_pause=max(0.0, _env_number(environ, "CHAT_PAUSE", float, CHAT_PAUSE)),
        http_max_retries=max(0, _env_number(environ, "HTTP_MAX_RETRIES", int, HTTP_MAX_RETRIES)),
        openai_model=environ.get("OPENAI_MODEL") or OPENAI_MODEL,
        bot_name_marker=environ.get("BOT_NAME_MARKER") or BOT_NAME_MARKER,
        report_path=environ.get("REPORT_PATH") or REPORT_PATH,
        isolate_chat_failures=_env_bool(environ.get("ISOLATE_CHAT_FAILURES"), True),
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
    )
