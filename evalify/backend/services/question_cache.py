"""
Evalify Quiz Attempt Service
Redis-backed question and response caches

All cache keys are built here. Handlers call the named operations and never
touch key strings. Losing every entry only costs a document store rescan;
attempt state always lives in the relational store.
"""

import json
import logging
import random
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from .questions import sanitize_questions
from ..database.documents import QuestionStore
from ...config import Settings, get_settings

# Configure logging
logger = logging.getLogger(__name__)


class QuestionCache:
    """Cache-aside access to sanitized questions, shuffled orders and saved responses"""

    def __init__(self, client: redis.Redis, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    # Key layout
    @staticmethod
    def questions_key(quiz_id: str) -> str:
        return f"QUIZ_{quiz_id}"

    @staticmethod
    def shuffled_key(quiz_id: str, student_id: str) -> str:
        return f"QUIZ_{quiz_id}_{student_id}_questions"

    @staticmethod
    def responses_key(quiz_id: str, student_id: str) -> str:
        return f"response:{quiz_id}:{student_id}"

    async def _get_json(self, key: str) -> Optional[Any]:
        cached_value = await self.client.get(key)
        if cached_value is None:
            return None
        return json.loads(cached_value)

    async def _set_json(self, key: str, value: Any, ttl: int, nx: bool = False) -> bool:
        stored = await self.client.set(key, json.dumps(value, default=str), ex=ttl, nx=nx)
        return bool(stored)

    # Sanitized question set
    async def get_cached_questions(self, quiz_id: str) -> Optional[List[Dict[str, Any]]]:
        return await self._get_json(self.questions_key(quiz_id))

    async def get_sanitized_questions(
        self,
        quiz_id: str,
        store: QuestionStore,
        cached: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """Sanitized questions of a quiz, scanning the store on a miss

        Concurrent misses may each scan and each write the same value.
        """
        if cached is None:
            cached = await self.get_cached_questions(quiz_id)
        if cached is not None:
            return cached

        documents = await store.fetch_questions(quiz_id)
        questions = sanitize_questions(documents)
        await self._set_json(
            self.questions_key(quiz_id),
            questions,
            self.settings.QUESTION_CACHE_TTL_SECONDS
        )
        logger.info(f"Cached {len(questions)} questions for quiz {quiz_id}")
        return questions

    async def invalidate_quiz(self, quiz_id: str) -> None:
        await self.client.delete(self.questions_key(quiz_id))
        logger.info(f"Invalidated question cache for quiz {quiz_id}")

    # Per-student shuffled order
    async def get_shuffled_order(self, quiz_id: str, student_id: str) -> Optional[List[Dict[str, Any]]]:
        return await self._get_json(self.shuffled_key(quiz_id, student_id))

    def shuffle_questions(self, quiz_id: str, student_id: str, questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        shuffled = list(questions)
        if self.settings.SEEDED_SHUFFLE:
            random.Random(f"{quiz_id}:{student_id}").shuffle(shuffled)
        else:
            random.shuffle(shuffled)
        return shuffled

    def shuffle_ttl(self, duration_minutes: int) -> int:
        return max(int(duration_minutes or 0) * 60 * 2, self.settings.MIN_SHUFFLE_CACHE_TTL_SECONDS)

    async def get_or_create_shuffled_order(
        self,
        quiz_id: str,
        student_id: str,
        duration_minutes: int,
        questions: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """The student's stable question order, created on first request"""
        existing = await self.get_shuffled_order(quiz_id, student_id)
        if existing is not None:
            return existing

        shuffled = self.shuffle_questions(quiz_id, student_id, questions)
        key = self.shuffled_key(quiz_id, student_id)
        if await self._set_json(key, shuffled, self.shuffle_ttl(duration_minutes), nx=True):
            return shuffled

        # A parallel request stored its order first
        winner = await self._get_json(key)
        return winner if winner is not None else shuffled

    # Partial responses
    async def get_saved_responses(self, quiz_id: str, student_id: str) -> Optional[Any]:
        return await self._get_json(self.responses_key(quiz_id, student_id))

    async def save_responses(self, quiz_id: str, student_id: str, responses: Any) -> None:
        await self._set_json(
            self.responses_key(quiz_id, student_id),
            responses,
            self.settings.RESPONSE_CACHE_TTL_SECONDS
        )

    async def clear_responses(self, quiz_id: str, student_id: str) -> None:
        await self.client.delete(self.responses_key(quiz_id, student_id))


__all__ = ["QuestionCache"]
