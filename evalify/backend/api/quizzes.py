"""
Evalify Quiz Attempt Service
Student quiz attempt API routes
"""

import logging
from typing import Any, List, Optional, Union

from fastapi import APIRouter, Depends, Path, Query, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..dependencies import (
    SessionUser,
    require_student,
    require_staff,
    get_question_cache,
    get_attempt_initializer,
    get_submission_finalizer
)
from ..exceptions import (
    AppException,
    InternalServerException,
    QuizIdMissingException,
    ValidationException
)
from ..services.attempts import AttemptInitializer, SubmissionFinalizer
from ..services.client_ip import resolve_client_ip
from ..services.question_cache import QuestionCache

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter(prefix="/quiz", tags=["Quiz Attempts"])


# Pydantic models
class QuizSubmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quiz_id: str = Field(..., alias="quizId", min_length=1)
    responses: Any = None
    violations: Optional[Union[str, List[str]]] = ""

    @field_validator("violations")
    @classmethod
    def join_violations(cls, v):
        if v is None:
            return ""
        if isinstance(v, list):
            return "\n".join(str(entry) for entry in v)
        return v


class ResponseUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quiz_id: Optional[str] = Field(None, alias="quizId")
    responses: Any = None


# API Routes
@router.get("/get")
async def get_quiz(
    current_user: SessionUser = Depends(require_student),
    quiz_id: Optional[str] = Query(None, alias="quizId", description="Quiz ID"),
    initializer: AttemptInitializer = Depends(get_attempt_initializer)
):
    """Serve a quiz to a student and open (or resume) their attempt"""

    if not quiz_id:
        raise QuizIdMissingException()

    try:
        return await initializer.initialize(current_user.id, quiz_id)
    except AppException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching quiz {quiz_id} for student {current_user.id}: {e}")
        raise InternalServerException("Failed to fetch quiz")


@router.post("/save")
async def save_quiz(
    payload: QuizSubmissionRequest,
    request: Request,
    current_user: SessionUser = Depends(require_student),
    finalizer: SubmissionFinalizer = Depends(get_submission_finalizer)
):
    """Submit the student's final responses"""

    client_ip = resolve_client_ip(
        request.headers,
        request.client.host if request.client else None
    )

    try:
        attempt = await finalizer.submit(
            current_user.id,
            payload.quiz_id,
            payload.responses,
            payload.violations,
            client_ip
        )
    except AppException:
        raise
    except Exception as e:
        logger.exception(f"Error saving quiz {payload.quiz_id} for student {current_user.id}: {e}")
        raise InternalServerException("Failed to save quiz")

    return {"success": True, "data": attempt.to_dict()}


@router.post("/update-response")
async def update_response(
    payload: ResponseUpdateRequest,
    current_user: SessionUser = Depends(require_student),
    cache: QuestionCache = Depends(get_question_cache)
):
    """Keep in-progress responses so a reload can restore them"""

    if not payload.quiz_id or payload.responses is None:
        raise ValidationException("Invalid request: missing quizId or responses")

    try:
        await cache.save_responses(payload.quiz_id, current_user.id, payload.responses)
    except Exception as e:
        logger.exception(f"Error updating responses for quiz {payload.quiz_id}: {e}")
        raise InternalServerException("Failed to update response")

    return {"success": True}


@router.delete("/{quiz_id}/cache")
async def invalidate_quiz_cache(
    quiz_id: str = Path(..., description="Quiz ID"),
    current_user: SessionUser = Depends(require_staff),
    cache: QuestionCache = Depends(get_question_cache)
):
    """Drop the cached question set after staff edit a quiz"""

    await cache.invalidate_quiz(quiz_id)
    logger.info(f"Question cache for quiz {quiz_id} invalidated by {current_user.id}")

    return {"success": True}
