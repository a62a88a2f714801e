"""
Evalify Quiz Attempt Service
Question document projections

Every student-facing question passes through ``to_safe_question`` so the
answer key never leaves the server. Staff grading reads ``to_full_question``.
"""

import enum
from typing import Any, Dict, Iterable, List


class QuestionType(str, enum.Enum):
    MCQ = "MCQ"
    MMCQ = "MMCQ"
    TRUE_FALSE = "TRUE_FALSE"
    FILL_IN_BLANK = "FILL_IN_BLANK"
    DESCRIPTIVE = "DESCRIPTIVE"
    MATCHING = "MATCHING"
    FILE_UPLOAD = "FILE_UPLOAD"
    CODING = "CODING"


# Optional document fields copied only when present
_OPTIONAL_FIELDS = ("options", "attachedFile", "driverCode", "boilerplateCode")


def resolve_question_type(document: Dict[str, Any]) -> Any:
    """Stored type tag, re-tagged MMCQ when the key holds several answers"""
    answer = document.get("answer")
    if isinstance(answer, list) and len(answer) > 1:
        return QuestionType.MMCQ.value
    return document.get("type")


def to_safe_question(document: Dict[str, Any]) -> Dict[str, Any]:
    mark = document.get("mark")
    if not mark:
        mark = document.get("marks", mark)

    question = {
        "id": str(document.get("_id", document.get("id"))),
        "question": document.get("question"),
        "mark": mark,
        "type": resolve_question_type(document),
        "quizId": document.get("quizId"),
    }

    for field in _OPTIONAL_FIELDS:
        if document.get(field):
            question[field] = document[field]

    function_details = document.get("functionDetails")
    if function_details and function_details.get("language"):
        question["language"] = function_details["language"]

    return question


def to_full_question(document: Dict[str, Any]) -> Dict[str, Any]:
    """Safe projection plus the answer key, for evaluation and staff grading tooling

    No student route returns this shape.
    """
    question = to_safe_question(document)
    question["answer"] = document.get("answer")
    return question


def sanitize_questions(documents: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [to_safe_question(document) for document in documents]


__all__ = [
    "QuestionType",
    "resolve_question_type",
    "to_safe_question",
    "to_full_question",
    "sanitize_questions",
]
