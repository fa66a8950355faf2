from typing import Iterable, List

from pydantic import TypeAdapter

from assistant.config import DEFAULT_TOPIC, DEFAULT_VERSION
from assistant.events import log_chat_event
from assistant.models import ExtractedVerse, Reference
from assistant.prompts import build_extraction_prompt
from assistant.session import generate_json

_VERSES = TypeAdapter(List[ExtractedVerse])


def parse_references(data) -> List[Reference]:
    if not data:
        return []
    verses = _VERSES.validate_python(data)
    references = []
    for verse in verses:
        reference = verse.reference.strip()
        text = verse.text.strip()
        if not reference or not text:
            continue
        references.append(
            Reference(
                reference=reference,
                version=verse.version.strip() or DEFAULT_VERSION,
                text=text,
                topic=verse.topic.strip() or DEFAULT_TOPIC,
            )
        )
    return references


async def extract_references(client, text: str, existing_topics: Iterable[str] = ()) -> List[Reference]:
    """Ask the fast model for every scripture reference quoted in ``text``.

    Any failure (transport, empty body, bad JSON, schema mismatch) yields an
    empty list; nothing is raised.
    """
    if not text or not text.strip():
        return []
    topics = list(existing_topics)
    prompt = build_extraction_prompt(text, topics)
    try:
        data = await generate_json(client, prompt, list[ExtractedVerse])
        references = parse_references(data)
    except Exception as exc:
        log_chat_event("enrichment_error", {"job": "references", "error": type(exc).__name__})
        return []
    log_chat_event(
        "references_extracted",
        {"count": len(references), "existing_topics": len(topics)},
    )
    return references
