"""Root conftest for all tests.

Shared fixtures: an isolated in-memory SQLite database, sample model output
and in-process fakes for every network-facing collaborator.
"""

import json
from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from swim_menu.db.menu_repository import SqlMenuStore
from swim_menu.db.models import Base
from swim_menu.menus.types import GeneratedMenu
from swim_menu.rag.types import RetrievalHit
from swim_menu.services.llm.model import ProviderConfig
from swim_menu.services.llm.providers import ProviderRegistry

OPENAI_KEY = "sk-test-0123456789abcdefghij"  # pragma: allowlist secret
RETRIEVAL_KEY = "sk-retrieval-0123456789abcdef"  # pragma: allowlist secret


def make_menu_dict(main_sets: int = 4, with_warm_up: bool = True) -> dict:
    """Build a model-shaped menu document.

    Warm-up is 400m on 2:30 (10 min); Main is 100m on 2:30 per set.
    """
    sections = []
    if with_warm_up:
        sections.append(
            {
                "name": "Warm-up",
                "items": [{"description": "400m easy freestyle", "distance": "400m", "sets": 1, "circle": "2:30"}],
                "totalTime": 10,
            }
        )
    sections.append(
        {
            "name": "Main",
            "items": [
                {
                    "description": f"{main_sets} x 100m freestyle build",
                    "distance": "100m",
                    "sets": main_sets,
                    "circle": "2:30",
                    "equipment": "",
                    "notes": "Hold pace",
                }
            ],
            "totalTime": 99,
        }
    )
    return {
        "title": "Medium load 25-minute practice",
        "menu": sections,
        "totalTime": 99,
        "intensity": "medium",
        "targetSkills": ["aerobic endurance"],
    }


@pytest.fixture
def menu_dict() -> dict:
    return make_menu_dict()


@pytest.fixture
def sample_menu(menu_dict) -> GeneratedMenu:
    return GeneratedMenu.model_validate(menu_dict)


@pytest.fixture
def session_scope():
    """Session scope factory over an isolated in-memory SQLite database.

    StaticPool keeps one connection so worker threads see the same database.
    Behaves like ``swim_menu.db.session.get_session``: commits on exit,
    rolls back on error.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    @contextmanager
    def scope():
        session = session_local()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield scope
    engine.dispose()


@pytest.fixture
def sql_store(session_scope) -> SqlMenuStore:
    return SqlMenuStore(session_scope=session_scope)


class FakeEmbedder:
    """Deterministic embedder that records calls."""

    def __init__(self, vector: list[float] | None = None, error: Exception | None = None):
        self.vector = vector or [1.0, 0.0, 0.0]
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def embed(self, text: str, credentials: str) -> list[float]:
        self.calls.append((text, credentials))
        if self.error:
            raise self.error
        return list(self.vector)


class FakeRetrievalStore:
    def __init__(self, hits: list[RetrievalHit] | None = None, error: Exception | None = None):
        self.hits = hits or []
        self.error = error
        self.calls: list[tuple] = []

    async def query_nearest(self, vector, top_k, duration_filter=None):
        self.calls.append((vector, top_k, duration_filter))
        if self.error:
            raise self.error
        return self.hits[:top_k]


class FakeMenuStore:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.saved: list[dict] = []

    async def save(self, menu_id, menu, embedding=None, metadata=None):
        if self.error:
            raise self.error
        self.saved.append({"menu_id": menu_id, "menu": menu, "embedding": embedding, "metadata": metadata})


class FakeProvider:
    """Model provider returning canned text."""

    def __init__(self, response: str, key: str = "openai", error: Exception | None = None):
        self.config = ProviderConfig(
            key=key,
            model_name="fake-model",
            temperature=0.0,
            key_prefix="sk-",
            min_key_length=20,
        )
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def generate(self, user_prompt: str, system_prompt: str, credentials: str) -> str:
        self.calls.append((user_prompt, system_prompt, credentials))
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_retrieval_store() -> FakeRetrievalStore:
    return FakeRetrievalStore(
        hits=[
            RetrievalHit(
                id="menu_prev",
                metadata={"title": "Previous sprint day", "description": "AI generated menu", "totalTime": 24},
                similarity=0.91,
            )
        ]
    )


@pytest.fixture
def fake_menu_store() -> FakeMenuStore:
    return FakeMenuStore()


@pytest.fixture
def fake_provider(menu_dict) -> FakeProvider:
    return FakeProvider(json.dumps(menu_dict))


@pytest.fixture
def registry(fake_provider) -> ProviderRegistry:
    return ProviderRegistry([fake_provider])
