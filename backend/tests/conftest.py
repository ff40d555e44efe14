"""Shared fixtures for placement tests."""

import asyncio
import os

# Settings are read at import time; keep tests off the real database and AI
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AI_ENABLED", "false")
os.environ.setdefault("GEMINI_API_KEY", "")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from placement.db import Base
from placement.models import SkillTag
from placement.orchestrator import PlacementOrchestrator
from placement.question_source import Question
from placement.store import AssessmentStore


CORRECT = "right"
WRONG = "wrong"


class StubQuestionSource:
    """Deterministic source: the correct answer is always ``right``."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.requested = []

    async def generate(self, difficulty):
        self.requested.append(difficulty)
        if self.delay:
            await asyncio.sleep(self.delay)
        return Question(
            question=f"Question at difficulty {difficulty}",
            options=[CORRECT, WRONG, "other", "another"],
            correct_answer=CORRECT,
            skill_tag=SkillTag.GRAMMAR,
            level="B1",
            source="stub",
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    return AssessmentStore(db_session)


@pytest.fixture
def stub_source():
    return StubQuestionSource()


@pytest.fixture
def orchestrator(stub_source):
    return PlacementOrchestrator(stub_source, total_questions=30)
