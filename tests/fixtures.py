"""
Shared test fixtures: in-memory stand-ins for Redis and MongoDB, a
controllable clock and SQLite-backed session factories.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import jwt
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from evalify.backend.database.connection import create_async_engine_instance
from evalify.backend.database.models import Base, Quiz, QuizResult
from evalify.config import get_settings


QUIZ_START = datetime(2026, 3, 2, 10, 0, 0)
QUIZ_END = datetime(2026, 3, 2, 11, 0, 0)


class InMemoryRedis:
    """Covers the slice of the redis.asyncio API the question cache uses."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.get_calls = 0

    async def get(self, key: str) -> Optional[str]:
        self.get_calls += 1
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None, nx: bool = False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class FailingRedis(InMemoryRedis):
    async def get(self, key: str):
        raise ConnectionError("redis unavailable")

    async def delete(self, *keys: str) -> int:
        raise ConnectionError("redis unavailable")


class InMemoryQuestionStore:
    """Question documents in insertion order, with a scan counter."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = list(documents or [])
        self.scans = 0

    async def fetch_questions(self, quiz_id: str) -> List[Dict[str, Any]]:
        self.scans += 1
        return [doc for doc in self.documents if doc.get("quizId") == quiz_id]


class FixedClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def sample_question_documents(quiz_id: str = "quiz-1", count: int = 6) -> List[Dict[str, Any]]:
    documents = []
    for index in range(count):
        documents.append({
            "_id": f"q{index + 1}",
            "quizId": quiz_id,
            "question": f"Question {index + 1}?",
            "type": "MCQ",
            "mark": 2,
            "options": [{"id": "A", "option": "Yes"}, {"id": "B", "option": "No"}],
            "answer": ["A"],
        })
    return documents


async def create_session_factory():
    """Fresh in-memory database with all tables; returns (engine, factory)."""
    engine = create_async_engine_instance("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    return engine, factory


async def add_quiz(factory, quiz_id: str = "quiz-1", shuffle: bool = False, duration: int = 60,
                   start_time: datetime = QUIZ_START, end_time: datetime = QUIZ_END) -> Quiz:
    quiz = Quiz(
        id=quiz_id,
        title="Data Structures Midterm",
        description="Trees and graphs",
        start_time=start_time,
        end_time=end_time,
        duration=duration,
        settings={"shuffle": shuffle, "showResult": False, "fullscreen": True, "calculator": False},
    )
    async with factory() as session:
        session.add(quiz)
        await session.commit()
    return quiz


async def count_attempts(factory, student_id: str, quiz_id: str) -> int:
    from sqlalchemy import func, select

    async with factory() as session:
        result = await session.execute(
            select(func.count(QuizResult.id)).where(
                QuizResult.student_id == student_id,
                QuizResult.quiz_id == quiz_id
            )
        )
        return result.scalar_one()


def make_token(user_id: str = "student-1", role: str = "STUDENT", **claims) -> str:
    settings = get_settings()
    payload = {"sub": user_id, "role": role, **claims}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id: str = "student-1", role: str = "STUDENT") -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}
