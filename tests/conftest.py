"""Shared fixtures: an in-memory SQL backing store and fake model collaborators."""

import json

import pytest
from fastapi.testclient import TestClient

from database import SqlStore, init_db, make_engine
from exceptions import EmbeddingError

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


class FakeLLM:
    """Stands in for LLMRouter. Replies are consumed in order; the last one repeats."""

    def __init__(self, *replies):
        self.replies = list(replies) or [""]
        self.calls = []

    async def complete(self, messages, model=None, max_tokens=1024, temperature=0.7):
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeEmbedder:
    """Maps known texts to fixed vectors; unknown text gets a vector orthogonal to everything else."""

    def __init__(self, vectors=None, fail=False):
        self.vectors = dict(vectors or {})
        self.fail = fail
        self.calls = []

    async def embed(self, text):
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding service down")
        return self.vectors.get(text.strip(), [0.0, 0.0, 0.0, 1.0])


class RecordingQueue:
    """Captures submitted coroutines without running them."""

    def __init__(self):
        self.submitted = []

    def submit(self, coro, name=None):
        self.submitted.append((name, coro))

    def close(self):
        for _, coro in self.submitted:
            coro.close()


def extraction_reply(facts=(), should_remember=False, summary=""):
    return json.dumps({
        "facts": [dict(f) for f in facts],
        "should_remember": should_remember,
        "semantic_summary": summary,
    })


@pytest.fixture
def store():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield SqlStore(engine)
    engine.dispose()


@pytest.fixture
def fake_llm():
    return FakeLLM("Hello there!")


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def task_queue():
    queue = RecordingQueue()
    yield queue
    queue.close()


@pytest.fixture
def web_search():
    async def _search(query, max_results=5):
        return []
    return _search


@pytest.fixture
def app(store, fake_llm, fake_embedder, task_queue, web_search):
    from main import app as fastapi_app
    from auth import get_current_user
    from database import get_store
    from services.embedding_service import get_embedding_client
    from services.llm_router import get_llm_router
    from services.search_service import get_web_search
    from services.task_queue import get_task_queue

    fastapi_app.dependency_overrides.update({
        get_current_user: lambda: USER_ID,
        get_store: lambda: store,
        get_llm_router: lambda: fake_llm,
        get_embedding_client: lambda: fake_embedder,
        get_task_queue: lambda: task_queue,
        get_web_search: lambda: web_search,
    })
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)

