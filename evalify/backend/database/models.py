"""
Evalify Quiz Attempt Service
SQLAlchemy Database Models
"""

import enum
import uuid
from typing import Dict, Any

from sqlalchemy import (
    Boolean, Column, DateTime, Integer, String, Text, Float,
    ForeignKey, JSON, Enum, Table, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship

from ..utils.helpers import utcnow, isoformat

# Base class for all models
Base = declarative_base()


def generate_id() -> str:
    return uuid.uuid4().hex


# Enums
class UserRole(enum.Enum):
    STUDENT = "STUDENT"
    STAFF = "STAFF"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class EvaluationStatus(enum.Enum):
    UNEVALUATED = "UNEVALUATED"
    QUEUED = "QUEUED"
    EVALUATING = "EVALUATING"
    EVALUATED = "EVALUATED"


# Base model with common fields
class BaseModel(Base):
    __abstract__ = True

    id = Column(String(64), primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


quiz_courses = Table(
    "quiz_courses",
    Base.metadata,
    Column("quiz_id", String(64), ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True),
    Column("course_id", String(64), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
)


class Course(BaseModel):
    __tablename__ = "courses"

    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, index=True)

    quizzes = relationship("Quiz", secondary=quiz_courses, back_populates="courses")


class Quiz(BaseModel):
    __tablename__ = "quizzes"

    title = Column(String(255), nullable=False)
    description = Column(Text)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # minutes
    settings = Column(JSON, default=dict)  # shuffle, showResult, fullscreen, calculator, autoSubmit

    # Relationships
    courses = relationship("Course", secondary=quiz_courses, back_populates="quizzes")
    results = relationship("QuizResult", back_populates="quiz", cascade="all, delete-orphan")

    # Constraints
    __table_args__ = (
        Index("idx_quiz_window", "start_time", "end_time"),
        CheckConstraint("duration >= 0", name="non_negative_duration"),
    )

    @property
    def shuffle(self) -> bool:
        return bool((self.settings or {}).get("shuffle", False))

    def is_open_at(self, moment) -> bool:
        """Both window bounds are inclusive"""
        return self.start_time <= moment <= self.end_time

    def to_student_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "settings": self.settings or {},
            "duration": self.duration,
            "startTime": isoformat(self.start_time),
            "endTime": isoformat(self.end_time),
        }


class QuizResult(BaseModel):
    """One attempt per (student, quiz); frozen once submitted"""

    __tablename__ = "quiz_results"

    student_id = Column(String(64), nullable=False, index=True)
    quiz_id = Column(String(64), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, default=0.0, nullable=False)
    total_score = Column(Float, default=0.0, nullable=False)
    start_time = Column(DateTime, default=utcnow, nullable=False)
    is_submitted = Column(Boolean, default=False, nullable=False)
    is_evaluated = Column(Enum(EvaluationStatus), default=EvaluationStatus.UNEVALUATED, nullable=False)
    responses = Column(JSON)
    violations = Column(Text)
    submitted_at = Column(DateTime)
    ip = Column(String(45))

    # Relationships
    quiz = relationship("Quiz", back_populates="results")

    # Constraints
    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", name="_student_quiz_uc"),
        Index("idx_result_quiz_submitted", "quiz_id", "is_submitted"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "quizId": self.quiz_id,
            "score": self.score,
            "totalScore": self.total_score,
            "startTime": isoformat(self.start_time),
            "isSubmitted": self.is_submitted,
            "isEvaluated": self.is_evaluated.value if self.is_evaluated else None,
            "responses": self.responses,
            "violations": self.violations,
            "submittedAt": isoformat(self.submitted_at),
            "ip": self.ip,
        }


__all__ = [
    "Base",
    "UserRole",
    "EvaluationStatus",
    "Course",
    "Quiz",
    "QuizResult",
    "quiz_courses",
]
