"""
Evalify Quiz Attempt Service
Quiz attempt lifecycle: start (or resume) an attempt and submit it

The relational store is the only source of truth for attempt state. An
attempt row is created in exactly one place (``AttemptInitializer``) and the
unique (student_id, quiz_id) constraint settles concurrent first requests.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .question_cache import QuestionCache
from ..database.connection import database_transaction
from ..database.documents import QuestionStore
from ..database.models import EvaluationStatus, Quiz, QuizResult
from ..exceptions import (
    AttemptNotFoundException,
    QuizAlreadyCompletedException,
    QuizAlreadySubmittedException,
    QuizNotAvailableException,
    QuizNotFoundException,
    SubmissionQuizNotFoundException,
    SubmissionTimeoutException,
    SubmissionWindowClosedException,
)
from ..utils.helpers import isoformat, utcnow
from ...config import Settings, get_settings

# Configure logging
logger = logging.getLogger(__name__)


async def fetch_quiz(session: AsyncSession, quiz_id: str) -> Optional[Quiz]:
    result = await session.execute(select(Quiz).where(Quiz.id == quiz_id))
    return result.scalar_one_or_none()


async def fetch_attempt(
    session: AsyncSession,
    student_id: str,
    quiz_id: str
) -> Optional[QuizResult]:
    query = select(QuizResult).where(
        QuizResult.student_id == student_id,
        QuizResult.quiz_id == quiz_id
    )
    result = await session.execute(query)
    return result.scalar_one_or_none()


class AttemptInitializer:
    """Serves a quiz to a student and opens their single attempt"""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        cache: QuestionCache,
        store: QuestionStore,
        clock: Callable = utcnow
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.store = store
        self.clock = clock

    async def _load_quiz_and_attempt(self, student_id: str, quiz_id: str):
        async with self.session_factory() as session:
            quiz = await fetch_quiz(session, quiz_id)
            attempt = await fetch_attempt(session, student_id, quiz_id)
        return quiz, attempt

    async def initialize(self, student_id: str, quiz_id: str) -> Dict[str, Any]:
        (quiz, existing), cached_questions, shuffled_questions = await asyncio.gather(
            self._load_quiz_and_attempt(student_id, quiz_id),
            self.cache.get_cached_questions(quiz_id),
            self.cache.get_shuffled_order(quiz_id, student_id)
        )

        if existing is not None and existing.is_submitted:
            raise QuizAlreadyCompletedException(quiz_id)

        if quiz is None:
            raise QuizNotFoundException(quiz_id)

        now = self.clock()
        if not quiz.is_open_at(now):
            logger.info(f"Student {student_id} opened quiz {quiz_id} outside its window")
            raise QuizNotAvailableException(quiz_id)

        attempt = await self.create_or_fetch_attempt(student_id, quiz_id, now)
        responses = await self.cache.get_saved_responses(quiz_id, student_id)

        if shuffled_questions is not None:
            questions = shuffled_questions
        else:
            questions = await self.cache.get_sanitized_questions(
                quiz_id, self.store, cached=cached_questions
            )
            if quiz.shuffle:
                questions = await self.cache.get_or_create_shuffled_order(
                    quiz_id, student_id, quiz.duration, questions
                )

        return {
            "quiz": quiz.to_student_dict(),
            "questions": questions,
            "responses": responses,
            "quizAttempt": {
                "startTime": isoformat(attempt.start_time)
            }
        }

    async def create_or_fetch_attempt(self, student_id: str, quiz_id: str, now) -> QuizResult:
        """Return the student's attempt, inserting it on first access"""
        try:
            async with database_transaction(self.session_factory) as session:
                attempt = await fetch_attempt(session, student_id, quiz_id)

                if attempt is None:
                    attempt = QuizResult(
                        student_id=student_id,
                        quiz_id=quiz_id,
                        score=0,
                        total_score=0,
                        start_time=now,
                        is_submitted=False,
                        is_evaluated=EvaluationStatus.UNEVALUATED
                    )
                    session.add(attempt)
                    await session.flush()
                    logger.info(f"Quiz attempt started: student={student_id} quiz={quiz_id}")
                elif attempt.is_submitted:
                    raise QuizAlreadyCompletedException(quiz_id)

                return attempt

        except IntegrityError:
            # Another request inserted the row first; read it back
            logger.info(f"Concurrent attempt creation for student={student_id} quiz={quiz_id}, reusing winner")
            async with self.session_factory() as session:
                attempt = await fetch_attempt(session, student_id, quiz_id)

            if attempt is None:
                raise
            if attempt.is_submitted:
                raise QuizAlreadyCompletedException(quiz_id)
            return attempt


class SubmissionFinalizer:
    """Moves an attempt to its terminal submitted state"""

    # Quiz read, guarded update, attempt read, commit
    TRANSACTION_STATEMENTS = 4

    def __init__(
        self,
        session_factory: async_sessionmaker,
        cache: QuestionCache,
        settings: Optional[Settings] = None,
        clock: Callable = utcnow
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock

    async def submit(
        self,
        student_id: str,
        quiz_id: str,
        responses: Any,
        violations: str,
        client_ip: str
    ) -> QuizResult:
        timeout = self.settings.SUBMISSION_TIMEOUT_SECONDS

        try:
            attempt = await asyncio.wait_for(
                self._finalize(student_id, quiz_id, responses, violations, client_ip),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Submission timed out after {timeout}s: student={student_id} quiz={quiz_id}")
            raise SubmissionTimeoutException(timeout)

        logger.info(f"Quiz submitted: student={student_id} quiz={quiz_id} ip={client_ip}")

        try:
            await self.cache.clear_responses(quiz_id, student_id)
        except Exception as e:
            logger.warning(f"Failed to clear saved responses for student={student_id} quiz={quiz_id}: {e}")

        return attempt

    def timeout_statements(self, dialect_name: str, server_version: Optional[Tuple[int, ...]] = None) -> List[str]:
        """``SET LOCAL`` statements that keep the whole transaction inside its budget

        Each statement gets an equal share of ``SUBMISSION_DB_TIMEOUT_MS``;
        PostgreSQL 17 and later also enforce the budget on the transaction
        itself.
        """
        if dialect_name != "postgresql":
            return []

        budget_ms = int(self.settings.SUBMISSION_DB_TIMEOUT_MS)
        statements = [
            f"SET LOCAL statement_timeout = {max(budget_ms // self.TRANSACTION_STATEMENTS, 1)}"
        ]
        if server_version and server_version >= (17,):
            statements.append(f"SET LOCAL transaction_timeout = {budget_ms}")
        return statements

    async def _apply_db_timeouts(self, session: AsyncSession):
        connection = await session.connection()
        dialect = connection.dialect
        for statement in self.timeout_statements(dialect.name, dialect.server_version_info):
            await session.execute(text(statement))

    async def _finalize(
        self,
        student_id: str,
        quiz_id: str,
        responses: Any,
        violations: str,
        client_ip: str
    ) -> QuizResult:
        async with database_transaction(self.session_factory) as session:
            await self._apply_db_timeouts(session)

            quiz = await fetch_quiz(session, quiz_id)
            if quiz is None:
                raise SubmissionQuizNotFoundException(quiz_id)

            now = self.clock()
            if not quiz.is_open_at(now):
                raise SubmissionWindowClosedException(quiz_id)

            # Only an unsubmitted row matches, so at most one submission writes
            result = await session.execute(
                update(QuizResult)
                .where(
                    QuizResult.student_id == student_id,
                    QuizResult.quiz_id == quiz_id,
                    QuizResult.is_submitted.is_(False)
                )
                .values(
                    responses=responses,
                    submitted_at=now,
                    violations=violations,
                    ip=client_ip,
                    is_submitted=True
                )
                .execution_options(synchronize_session=False)
            )
            matched = result.rowcount

            attempt = await fetch_attempt(session, student_id, quiz_id)

        # Raised after commit: no rollback runs on a connection a winning request may share
        if attempt is None:
            raise AttemptNotFoundException(quiz_id, student_id)
        if matched == 0:
            raise QuizAlreadySubmittedException(quiz_id)

        return attempt


__all__ = [
    "fetch_quiz",
    "fetch_attempt",
    "AttemptInitializer",
    "SubmissionFinalizer",
]
