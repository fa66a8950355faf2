from typing import List

from assistant.config import SUGGESTION_COUNT
from assistant.events import log_chat_event
from assistant.prompts import build_suggestion_prompt
from assistant.session import generate_json


def parse_suggestions(data) -> List[str]:
    if not isinstance(data, list):
        return []
    suggestions = [item.strip() for item in data if isinstance(item, str) and item.strip()]
    return suggestions[:SUGGESTION_COUNT]


async def generate_suggestions(client, text: str) -> List[str]:
    if not text or not text.strip():
        return []
    try:
        data = await generate_json(client, build_suggestion_prompt(text), list[str])
    except Exception as exc:
        log_chat_event("enrichment_error", {"job": "suggestions", "error": type(exc).__name__})
        return []
    suggestions = parse_suggestions(data)
    log_chat_event("suggestions_generated", {"count": len(suggestions)})
    return suggestions
