from typing import Callable, Iterable, List, Optional, Tuple

from assistant.config import UNCATEGORIZED_TOPIC
from assistant.models import Reference, Turn
from assistant.prompts import GREETING

ALL_TOPICS = "All"


class ConversationStore:
    """In-memory log of turns plus the deduplicated reference collection.

    Every public mutation is one read-modify-write of the current snapshot
    followed by a listener notification. Turns are replaced, never edited.
    """

    def __init__(self, greeting: Optional[str] = GREETING):
        self._turns: List[Turn] = []
        self._references: List[Reference] = []
        self._reference_keys = set()
        self._open_turn_id: Optional[str] = None
        self._listeners: List[Callable[["ConversationStore"], None]] = []
        self.version = 0
        if greeting:
            self._turns.append(Turn(role="assistant", content=greeting))

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def references(self) -> Tuple[Reference, ...]:
        return tuple(self._references)

    @property
    def open_turn_id(self) -> Optional[str]:
        return self._open_turn_id

    @property
    def last_turn(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    def subscribe(self, callback: Callable[["ConversationStore"], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _changed(self) -> None:
        self.version += 1
        for callback in list(self._listeners):
            callback(self)

    def _index_of(self, turn_id: str) -> Optional[int]:
        for idx in range(len(self._turns) - 1, -1, -1):
            if self._turns[idx].turn_id == turn_id:
                return idx
        return None

    def get_turn(self, turn_id: str) -> Optional[Turn]:
        idx = self._index_of(turn_id)
        return self._turns[idx] if idx is not None else None

    def is_latest(self, turn_id: str) -> bool:
        last = self.last_turn
        return last is not None and last.turn_id == turn_id

    def append_user_turn(self, content: str) -> Turn:
        self.close_turn()
        last = self.last_turn
        if last is not None and last.role == "assistant" and last.suggestions:
            self._turns[-1] = last.model_copy(update={"suggestions": None})
        turn = Turn(role="user", content=content)
        self._turns.append(turn)
        self._changed()
        return turn

    def open_assistant_turn(self) -> Turn:
        self.close_turn()
        turn = Turn(role="assistant", content="")
        self._turns.append(turn)
        self._open_turn_id = turn.turn_id
        self._changed()
        return turn

    def append_chunk(self, turn_id: str, text: str) -> Turn:
        if turn_id != self._open_turn_id:
            raise ValueError("turn is not open")
        current = self._turns[-1]
        updated = current.model_copy(update={"content": current.content + text})
        self._turns[-1] = updated
        self._changed()
        return updated

    def close_turn(self) -> None:
        self._open_turn_id = None

    def append_assistant_turn(self, content: str) -> Turn:
        self.close_turn()
        turn = Turn(role="assistant", content=content)
        self._turns.append(turn)
        self._changed()
        return turn

    def attach_suggestions(self, turn_id: str, suggestions: Iterable[str]) -> bool:
        suggestions = list(suggestions)
        if not suggestions:
            return False
        idx = self._index_of(turn_id)
        if idx is None or self._turns[idx].role != "assistant":
            return False
        self._turns[idx] = self._turns[idx].model_copy(update={"suggestions": suggestions})
        self._changed()
        return True

    def merge_references(self, incoming: Iterable[Reference]) -> List[Reference]:
        added = []
        for ref in incoming:
            if ref.key in self._reference_keys:
                continue
            self._reference_keys.add(ref.key)
            added.append(ref)
        if not added:
            return []
        self._references = self._references + added
        self._changed()
        return added

    def existing_topics(self) -> List[str]:
        seen = []
        for ref in self._references:
            if ref.topic and ref.topic not in seen:
                seen.append(ref.topic)
        return seen

    def topics(self) -> List[str]:
        if not self._references:
            return [ALL_TOPICS]
        labels = {ref.topic or UNCATEGORIZED_TOPIC for ref in self._references}
        return [ALL_TOPICS] + sorted(labels)

    def filter_references(self, topic: str = ALL_TOPICS, query: str = "") -> List[Reference]:
        needle = (query or "").lower().strip()
        items = []
        for ref in self._references:
            label = ref.topic or UNCATEGORIZED_TOPIC
            if topic and topic != ALL_TOPICS and label != topic:
                continue
            if needle and not (
                needle in ref.reference.lower()
                or needle in ref.text.lower()
                or needle in (ref.topic or "").lower()
            ):
                continue
            items.append(ref)
        return items
