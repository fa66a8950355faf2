import asyncio
from typing import Callable, List, Optional, Set

from assistant.events import log_chat_event
from assistant.extractor import extract_references
from assistant.models import ChatState, RoundTripResult
from assistant.prompts import ERROR_TURN_TEMPLATE
from assistant.session import create_session
from assistant.store import ConversationStore
from assistant.suggestions import generate_suggestions

SESSION_MISSING_MESSAGE = "Chat session is not initialized."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class Orchestrator:
    """Drives round-trips against one session and owns their enrichment jobs.

    ``submit`` returns as soon as the stream ends; reference extraction and
    suggestion generation keep running as background tasks and merge into the
    store when they resolve.
    """

    def __init__(self, session, store: Optional[ConversationStore] = None):
        self.session = session
        self.store = store if store is not None else ConversationStore()
        self.state = ChatState.IDLE
        self.last_error: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def session_id(self) -> Optional[str]:
        return getattr(self.session, "session_id", None)

    @property
    def is_loading(self) -> bool:
        return self.state is not ChatState.IDLE

    @property
    def pending_enrichment(self) -> int:
        return len(self._tasks)

    def begin(self, prompt: str) -> bool:
        """Accept a prompt and append its user turn, or reject it untouched.

        Runs synchronously, so a caller that schedules ``complete`` as a task
        still holds the in-flight slot before yielding to the event loop.
        """
        if self.state is not ChatState.IDLE:
            log_chat_event("chat_rejected", {"session_id": self.session_id, "reason": self.state.value})
            return False
        if not (prompt or "").strip():
            log_chat_event("chat_rejected", {"session_id": self.session_id, "reason": "blank"})
            return False

        self.state = ChatState.SENDING
        self.last_error = None
        self.store.append_user_turn(prompt)
        log_chat_event(
            "chat_message",
            {"session_id": self.session_id, "role": "user", "chars": len(prompt)},
        )
        return True

    async def submit(
        self, prompt: str, on_chunk: Optional[Callable[[str], None]] = None
    ) -> RoundTripResult:
        if not self.begin(prompt):
            return RoundTripResult(accepted=False)
        return await self.complete(prompt, on_chunk=on_chunk)

    async def complete(
        self, prompt: str, on_chunk: Optional[Callable[[str], None]] = None
    ) -> RoundTripResult:
        """Stream the reply to a prompt already accepted by ``begin``."""
        if self.state is not ChatState.SENDING:
            raise RuntimeError("no accepted prompt to complete")
        if self.session is None:
            self.last_error = SESSION_MISSING_MESSAGE
            self.state = ChatState.IDLE
            log_chat_event("chat_error", {"session_id": None, "error": "session_missing"})
            return RoundTripResult(accepted=True, error=SESSION_MISSING_MESSAGE)

        turn_id = None
        parts: List[str] = []
        try:
            stream = await self.session.send(prompt)
            self.state = ChatState.STREAMING
            turn_id = self.store.open_assistant_turn().turn_id
            async for chunk in stream:
                parts.append(chunk)
                self.store.append_chunk(turn_id, chunk)
                if on_chunk is not None:
                    on_chunk(chunk)
            self.store.close_turn()
        except Exception as exc:
            message = str(exc) or UNEXPECTED_ERROR_MESSAGE
            self.last_error = message
            self.store.append_assistant_turn(ERROR_TURN_TEMPLATE.format(message=message))
            log_chat_event(
                "chat_error",
                {
                    "session_id": self.session_id,
                    "error": type(exc).__name__,
                    "partial_chars": len("".join(parts)),
                },
            )
            return RoundTripResult(
                accepted=True, turn_id=turn_id, content="".join(parts), error=message
            )
        finally:
            self.state = ChatState.IDLE

        content = "".join(parts)
        log_chat_event(
            "chat_response",
            {"session_id": self.session_id, "chunks": len(parts), "chars": len(content)},
        )
        if content:
            self._dispatch_enrichment(turn_id, content)
        return RoundTripResult(accepted=True, turn_id=turn_id, content=content)

    def _dispatch_enrichment(self, turn_id: str, content: str) -> None:
        topics = self.store.existing_topics()
        self._spawn(self._merge_references(turn_id, content, topics))
        self._spawn(self._merge_suggestions(turn_id, content))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _merge_references(self, turn_id: str, content: str, topics: List[str]) -> None:
        try:
            references = await extract_references(self.session.client, content, topics)
            added = self.store.merge_references(references)
        except Exception as exc:
            log_chat_event(
                "enrichment_error",
                {"session_id": self.session_id, "job": "references", "error": type(exc).__name__},
            )
            return
        if added:
            log_chat_event(
                "references_merged",
                {
                    "session_id": self.session_id,
                    "turn_id": turn_id,
                    "added": len(added),
                    "total": len(self.store.references),
                },
            )

    async def _merge_suggestions(self, turn_id: str, content: str) -> None:
        try:
            suggestions = await generate_suggestions(self.session.client, content)
            if not suggestions:
                return
            # Suggestions only live on the latest turn; a newer turn makes them stale.
            if not self.store.is_latest(turn_id):
                log_chat_event("suggestions_stale", {"session_id": self.session_id, "turn_id": turn_id})
                return
            self.store.attach_suggestions(turn_id, suggestions)
        except Exception as exc:
            log_chat_event(
                "enrichment_error",
                {"session_id": self.session_id, "job": "suggestions", "error": type(exc).__name__},
            )

    async def wait_for_enrichment(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def create_orchestrator(api_key: Optional[str] = None, client=None) -> Orchestrator:
    return Orchestrator(create_session(api_key=api_key, client=client))
