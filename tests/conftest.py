import asyncio
import json

import pytest

from assistant import config


class FakeChunk:
    def __init__(self, text):
        self.text = text


class FakeStream:
    def __init__(self, chunks, fail_after=None, error=None):
        self._chunks = list(chunks)
        self._fail_after = fail_after
        self._error = error or ConnectionError("stream interrupted")

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for idx, text in enumerate(self._chunks):
            if self._fail_after is not None and idx >= self._fail_after:
                raise self._error
            await asyncio.sleep(0)
            yield FakeChunk(text)
        if self._fail_after is not None and self._fail_after >= len(self._chunks):
            raise self._error


class FakeChat:
    def __init__(self, replies):
        self._replies = list(replies)
        self.prompts = []

    async def send_message_stream(self, message):
        self.prompts.append(message)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, FakeStream):
            return reply
        return FakeStream(reply)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModels:
    """Answers structured calls with a handler keyed on the prompt text."""

    def __init__(self, handler):
        self._handler = handler
        self.calls = []

    async def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        result = self._handler(contents)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, Exception):
            raise result
        if isinstance(result, str):
            return FakeResponse(result)
        return FakeResponse(json.dumps(result))


class FakeChats:
    def __init__(self, chat):
        self._chat = chat
        self.created = []

    def create(self, model, config=None):
        self.created.append({"model": model, "config": config})
        return self._chat


class FakeAio:
    def __init__(self, chat, handler):
        self.chats = FakeChats(chat)
        self.models = FakeModels(handler)
        self.closed = False

    async def aclose(self):
        self.closed = True


class FakeClient:
    def __init__(self, replies=(), handler=None):
        self.chat = FakeChat(replies)
        self.aio = FakeAio(self.chat, handler or (lambda _prompt: []))


def route_enrichment(references=None, suggestions=None):
    """Build a prompt handler that answers extraction and suggestion calls."""

    def handler(prompt):
        if "biblical text parser" in prompt:
            return references if references is not None else []
        return suggestions if suggestions is not None else []

    return handler


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    path = tmp_path / "events.log"
    monkeypatch.setattr(config, "EVENT_LOG_PATH", str(path))
    return path


@pytest.fixture
def read_events(event_log):
    def _read():
        if not event_log.exists():
            return []
        return [json.loads(line) for line in event_log.read_text(encoding="utf-8").splitlines()]

    return _read
