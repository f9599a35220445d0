"""
Pytest Configuration and Shared Fixtures

Provides a throwaway SQLite database, a scripted AI provider and a seeded
project for all test modules.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.adapters.llm import BaseLLMAdapter, LLMAdapterError, LLMProviderType, LLMResponse
from app.models import Base, Brand, IntentType, Project, Prompt
from app.services import AnalysisRunner, ProgressBroadcaster


# ============================================================================
# Fake AI Provider
# ============================================================================

ScriptedResponse = Union[str, tuple, Exception]


def grounding(*sources, queries: Optional[List[str]] = None) -> Dict:
    """Provider-shaped grounding metadata from (uri, title) pairs"""
    return {
        "groundingChunks": [{"web": {"uri": uri, "title": title}} for uri, title in sources],
        "webSearchQueries": queries or [],
    }


class FakeAdapter(BaseLLMAdapter):
    """
    Scripted provider keyed by prompt text.

    A script entry is response text, a (text, grounding) tuple or an
    exception to raise. Set `gate` to hold every call until it is released.
    """

    def __init__(self, responses: Optional[Dict[str, ScriptedResponse]] = None, api_key: Optional[str] = "test-key"):
        super().__init__(api_key)
        self.responses = responses or {}
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.GOOGLE

    @property
    def default_model(self) -> str:
        return "fake-model"

    async def execute(self, prompt, config=None, system_prompt=None) -> LLMResponse:
        self.calls.append(prompt)
        if self.gate is not None:
            await self.gate.wait()

        scripted = self.responses.get(prompt, "")
        if isinstance(scripted, Exception):
            raise scripted

        text, metadata = scripted if isinstance(scripted, tuple) else (scripted, {})
        return LLMResponse(
            content=text,
            raw_response={},
            provider=self.provider,
            model=self.default_model,
            grounding_metadata=metadata,
        )


def provider_error(message: str = "Rate limit exceeded") -> LLMAdapterError:
    return LLMAdapterError(message, LLMProviderType.GOOGLE)


# ============================================================================
# Database
# ============================================================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so background runs and tests use separate connections"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Same commit/rollback contract as app.utils.get_db_context"""
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    @asynccontextmanager
    async def factory():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return factory


async def create_project(
    session_factory,
    brands: List[str],
    prompts: List[str],
    user_brand: Optional[str] = None,
    inactive_prompts: Optional[List[str]] = None,
) -> Project:
    """Project with brands and prompts in the given order (explicit timestamps)"""
    base = datetime(2025, 1, 1)
    user_brand = user_brand or (brands[0] if brands else None)

    async with session_factory() as db:
        project = Project(name="Test Project", category="Test category")
        db.add(project)
        await db.flush()

        for i, name in enumerate(brands):
            db.add(Brand(
                project_id=project.id,
                name=name,
                is_user_brand=(name == user_brand),
                created_at=base + timedelta(seconds=i),
            ))
        for i, text in enumerate(prompts):
            db.add(Prompt(
                project_id=project.id,
                text=text,
                intent_type=IntentType.RECOMMENDATION,
                created_at=base + timedelta(seconds=i),
            ))
        for i, text in enumerate(inactive_prompts or []):
            db.add(Prompt(
                project_id=project.id,
                text=text,
                is_active=False,
                created_at=base + timedelta(seconds=100 + i),
            ))

    return project


# ============================================================================
# Scenario Fixtures
# ============================================================================

PROMPT_ONE = "What is the best project management tool?"
PROMPT_TWO = "Which tool do teams prefer?"


@pytest.fixture
def scenario_responses() -> Dict[str, ScriptedResponse]:
    """Acme first then Globex; then only Globex"""
    return {
        PROMPT_ONE: (
            "Acme is the best choice for most teams. Globex is also popular.",
            grounding(
                ("https://www.example.com/review", "Review"),
                ("https://blog.example.org/post", "Post"),
            ),
        ),
        PROMPT_TWO: "Many teams prefer Globex for its simplicity.",
    }


@pytest_asyncio.fixture
async def scenario_project(session_factory) -> Project:
    return await create_project(session_factory, ["Acme", "Globex"], [PROMPT_ONE, PROMPT_TWO])


@pytest.fixture
def fake_adapter(scenario_responses) -> FakeAdapter:
    return FakeAdapter(scenario_responses)


@pytest.fixture
def runner(fake_adapter, session_factory) -> AnalysisRunner:
    return AnalysisRunner(
        fake_adapter,
        session_factory=session_factory,
        broadcaster=ProgressBroadcaster(),
        request_delay=0,
    )
