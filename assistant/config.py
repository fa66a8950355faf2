import os
from typing import Optional

CHAT_MODEL = os.getenv("CHAT_MODEL", "gemini-2.5-pro")
ENRICH_MODEL = os.getenv("ENRICH_MODEL", "gemini-2.5-flash")
ENRICH_MAX_ATTEMPTS = int(os.getenv("ENRICH_MAX_ATTEMPTS", "3"))
EVENT_LOG_PATH = os.getenv("EVENT_LOG_PATH", "logs/events.log")
LLM_SLOW_MS = int(os.getenv("LLM_SLOW_MS", "2000"))
LOG_ID_SALT = os.getenv("LOG_ID_SALT", "")

DEFAULT_VERSION = "NLT"
DEFAULT_TOPIC = "General"
UNCATEGORIZED_TOPIC = "Uncategorized"
SUGGESTION_COUNT = 3

API_TITLE = "Christian Life Assistant API"
API_VERSION = "0.1.0"


class ConfigError(RuntimeError):
    pass


def get_api_key() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None


def require_api_key() -> str:
    api_key = get_api_key()
    if not api_key:
        raise ConfigError("API_KEY environment variable not set")
    return api_key
