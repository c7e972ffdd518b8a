"""
Pytest Configuration and Fixtures

In-memory SQLite per test, a scripted LLM provider and a temporary
blob store. Nothing here talks to a real model or network.
"""
from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from zeta.database import Base
from zeta import models  # noqa: F401  registers tables
from zeta.llm.base import LLMProvider
from zeta.models.project import Project, MainframeInfo
from zeta.storage import LocalBlobStorage


class FakeLLM(LLMProvider):
    """Returns queued responses in order; records every call."""

    def __init__(self, responses: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    async def generate_text(
        self,
        prompt,
        model,
        max_tokens=2048,
        temperature=0.7,
        system_prompt=None,
        json_mode=False,
    ):
        self.calls.append({
            "prompt": prompt,
            "model": model,
            "system_prompt": system_prompt,
            "json_mode": json_mode,
        })
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return "{}" if json_mode else "Sure, let's keep going."


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def make_project(db: AsyncSession, **fields) -> Project:
    project = Project(name=fields.pop("name", "Test Project"), **fields)
    db.add(project)
    await db.flush()
    db.add(MainframeInfo(project_id=project.id))
    await db.commit()
    return project


@pytest_asyncio.fixture
async def project(db):
    return await make_project(db)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def blob_storage(tmp_path):
    return LocalBlobStorage(root=str(tmp_path / "blobs"), public_base_url="http://test/files")
