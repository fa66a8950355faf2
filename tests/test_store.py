import pytest
from pydantic import ValidationError

from assistant.models import Reference, Turn
from assistant.prompts import GREETING
from assistant.store import ConversationStore


def _ref(reference, version="NLT", text="text", topic=None):
    return Reference(reference=reference, version=version, text=text, topic=topic)


def test_new_store_starts_with_greeting():
    store = ConversationStore()
    assert len(store.turns) == 1
    assert store.turns[0].role == "assistant"
    assert store.turns[0].content == GREETING


def test_chunks_fold_in_order_including_single_characters():
    store = ConversationStore(greeting=None)
    store.append_user_turn("hi")
    turn = store.open_assistant_turn()
    text = "For God so loved the world"
    for ch in text:
        store.append_chunk(turn.turn_id, ch)
    assert store.last_turn.content == text
    assert store.open_turn_id == turn.turn_id


def test_append_chunk_rejects_closed_turn():
    store = ConversationStore(greeting=None)
    turn = store.open_assistant_turn()
    store.close_turn()
    try:
        store.append_chunk(turn.turn_id, "late")
    except ValueError:
        pass
    else:
        raise AssertionError("expected closed turn to reject chunks")


def test_user_turn_clears_previous_suggestions():
    store = ConversationStore(greeting=None)
    turn = store.append_assistant_turn("answer")
    assert store.attach_suggestions(turn.turn_id, ["a", "b", "c"])
    store.append_user_turn("next question")

    assert store.turns[0].suggestions is None
    assert store.turns[-1].role == "user"


def test_attach_empty_suggestions_is_no_change():
    store = ConversationStore(greeting=None)
    turn = store.append_assistant_turn("answer")
    version = store.version
    assert store.attach_suggestions(turn.turn_id, []) is False
    assert store.version == version
    assert store.get_turn(turn.turn_id).suggestions is None


def test_merge_preserves_first_seen_order():
    store = ConversationStore(greeting=None)
    a = _ref("John 3:16", topic="X")
    b = _ref("Romans 8:28", text="original")
    store.merge_references([a, b])

    b_again = _ref("Romans 8:28", text="changed", topic="Other")
    c = _ref("Psalm 23:1", topic="X")
    added = store.merge_references([b_again, c])

    assert added == [c]
    assert [r.reference for r in store.references] == ["John 3:16", "Romans 8:28", "Psalm 23:1"]
    assert store.references[1].text == "original"
    assert store.references[1].topic is None


def test_merge_identity_includes_version():
    store = ConversationStore(greeting=None)
    store.merge_references([_ref("John 3:16", "KJV"), _ref("John 3:16", "NLT")])
    assert len(store.references) == 2


def test_merge_of_known_references_does_not_notify():
    store = ConversationStore(greeting=None)
    store.merge_references([_ref("John 3:16")])
    calls = []
    store.subscribe(lambda s: calls.append(s.version))

    assert store.merge_references([_ref("John 3:16", text="other")]) == []
    assert calls == []


def test_subscribers_see_every_mutation():
    store = ConversationStore(greeting=None)
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(s.last_turn.content))
    store.append_user_turn("q")
    turn = store.open_assistant_turn()
    store.append_chunk(turn.turn_id, "a")
    store.append_chunk(turn.turn_id, "b")
    unsubscribe()
    store.append_chunk(turn.turn_id, "c")

    assert seen == ["q", "", "a", "ab"]


def test_existing_topics_are_unique_and_skip_blank():
    store = ConversationStore(greeting=None)
    store.merge_references(
        [_ref("A 1:1", topic="Faith"), _ref("B 1:1", topic="Faith"), _ref("C 1:1"), _ref("D 1:1", topic="Hope")]
    )
    assert store.existing_topics() == ["Faith", "Hope"]


def test_topics_and_filter():
    store = ConversationStore(greeting=None)
    assert store.topics() == ["All"]
    store.merge_references(
        [
            _ref("John 3:16", text="For God so loved the world", topic="Salvation"),
            _ref("Hebrews 11:1", text="Faith is the confidence", topic="Faith"),
            _ref("Genesis 1:1", text="In the beginning"),
        ]
    )
    assert store.topics() == ["All", "Faith", "Salvation", "Uncategorized"]
    assert [r.reference for r in store.filter_references(topic="Uncategorized")] == ["Genesis 1:1"]
    assert [r.reference for r in store.filter_references(query="LOVED")] == ["John 3:16"]
    assert [r.reference for r in store.filter_references(query="faith")] == ["Hebrews 11:1"]
    assert len(store.filter_references()) == 3


def test_turn_role_is_limited_to_user_and_assistant():
    with pytest.raises(ValidationError):
        Turn(role="system", content="x")
    assert Turn(role="user").role == "user"
