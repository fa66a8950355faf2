import json
import time
import uuid
from typing import Any, AsyncIterator, Optional

from google import genai
from google.genai import errors, types
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from assistant import config
from assistant.events import log_chat_event, log_llm_event
from assistant.prompts import SYSTEM_INSTRUCTIONS


class SessionHandle:
    """One long-lived chat context on the generative backend.

    Created once per process and reused for every send. The handle owns its
    client; call ``aclose`` on shutdown.
    """

    def __init__(self, client, chat, model: str):
        self.session_id = uuid.uuid4().hex
        self.model = model
        self._client = client
        self._chat = chat

    @property
    def client(self):
        return self._client

    async def send(self, prompt: str) -> AsyncIterator[str]:
        """Open one model turn and return its text fragments in generation order.

        The returned iterator is forward-only. Errors raised by the backend
        after the stream started propagate to the caller; fragments already
        yielded stay valid.
        """
        start = time.perf_counter()
        stream = await self._chat.send_message_stream(prompt)
        return self._iter_text(stream, start)

    async def _iter_text(self, stream, start: float) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                text = chunk.text
                if text:
                    yield text
        except Exception as exc:
            log_llm_event("llm_error", {"model": self.model, "error": type(exc).__name__, "kind": "chat"})
            raise
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        log_llm_event("llm_latency", {"model": self.model, "elapsed_ms": elapsed_ms, "kind": "chat"})

    async def aclose(self) -> None:
        await self._client.aio.aclose()


def create_session(api_key: Optional[str] = None, client=None) -> SessionHandle:
    if client is None:
        client = genai.Client(api_key=api_key or config.require_api_key())
    chat = client.aio.chats.create(
        model=config.CHAT_MODEL,
        config=types.GenerateContentConfig(system_instruction=SYSTEM_INSTRUCTIONS),
    )
    session = SessionHandle(client, chat, config.CHAT_MODEL)
    log_chat_event("session_created", {"session_id": session.session_id, "model": config.CHAT_MODEL})
    return session


@retry(
    retry=retry_if_exception_type(errors.ServerError),
    stop=stop_after_attempt(config.ENRICH_MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=0.5, max=4),
    reraise=True,
)
async def _generate_content(client, model: str, prompt: str, schema: Any):
    return await client.aio.models.generate_content(
        model=model,
        contents=prompt,
        config=types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        ),
    )


async def generate_json(client, prompt: str, schema: Any, model: Optional[str] = None) -> Any:
    """Run one structured call and return the decoded JSON, or None when the
    model answered with an empty body."""
    model = model or config.ENRICH_MODEL
    start = time.perf_counter()
    try:
        response = await _generate_content(client, model, prompt, schema)
    except Exception as exc:
        log_llm_event("llm_error", {"model": model, "error": type(exc).__name__})
        raise
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_llm_event("llm_latency", {"model": model, "elapsed_ms": elapsed_ms, "kind": "json"})
    if elapsed_ms > config.LLM_SLOW_MS:
        log_llm_event("llm_slow", {"model": model, "elapsed_ms": elapsed_ms})
    raw = (response.text or "").strip()
    if not raw:
        return None
    return json.loads(raw)
