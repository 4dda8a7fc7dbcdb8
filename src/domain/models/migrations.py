"""
Read-time migration of stored documents.

Quizzes written by the original web client use camelCase keys and no
schema_version. Every document read from the store goes through
``upgrade_document`` and is then validated against its pydantic model.
"""
from typing import Callable, Dict, Iterable, List, Tuple, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from .db_models import SCHEMA_VERSION, Quiz, QuizSubmission, User
from ..errors import PersistenceError
from qi_utils.logger_utils import logger

T = TypeVar("T", bound=BaseModel)

_TOP_LEVEL_KEYS: Dict[str, Dict[str, str]] = {
    "quizzes": {
        "createdBy": "created_by",
        "createdAt": "created_at",
        "isPublished": "is_published",
    },
    "submissions": {
        "quizId": "quiz_id",
        "submittedAt": "submitted_at",
        "studentName": "student_name",
        "totalQuestions": "total_questions",
    },
    "users": {
        "displayName": "display_name",
    },
}
_QUESTION_KEYS = {"correctOption": "correct_option"}
_ANSWER_KEYS = {
    "questionId": "question_id",
    "selectedOption": "selected_option",
    "isCorrect": "is_correct",
}


def stored_names(collection: str, field: str) -> Union[str, Tuple[str, ...]]:
    """
    Every top-level name ``field`` may be stored under, for query filters.

    Returns the field itself when it was never renamed, otherwise a tuple
    of the current name followed by its legacy spellings.
    """
    legacy = tuple(old for old, new in _TOP_LEVEL_KEYS.get(collection, {}).items() if new == field)
    return (field, *legacy) if legacy else field


def _rename(doc: dict, mapping: Dict[str, str]) -> dict:
    renamed = {}
    for key, value in doc.items():
        new_key = mapping.get(key, key)
        # never let a legacy key overwrite a current one
        if new_key in renamed and key != new_key:
            continue
        renamed[new_key] = value
    return renamed


def upgrade_document(collection: str, doc: dict) -> dict:
    """Return ``doc`` in the current schema. Current documents pass through unchanged."""
    if doc.get("schema_version", 1) >= SCHEMA_VERSION:
        return doc

    upgraded = _rename(doc, _TOP_LEVEL_KEYS.get(collection, {}))
    if "_id" not in upgraded and "id" in upgraded:
        upgraded["_id"] = upgraded.pop("id")

    if collection == "quizzes":
        upgraded["questions"] = [
            _rename(q, _QUESTION_KEYS) for q in upgraded.get("questions") or []
        ]
    elif collection == "submissions":
        upgraded["answers"] = [
            _rename(a, _ANSWER_KEYS) for a in upgraded.get("answers") or []
        ]

    upgraded["schema_version"] = SCHEMA_VERSION
    return upgraded


def _load(collection: str, model: type, doc: dict):
    try:
        return model(**upgrade_document(collection, doc))
    except PydanticValidationError as exc:
        logger.error(
            "Malformed document in store",
            extra={"collection": collection, "doc_id": str(doc.get("_id")), "error": str(exc)},
        )
        raise PersistenceError(f"Stored {collection} document is malformed.") from exc


def load_quiz(doc: dict) -> Quiz:
    return _load("quizzes", Quiz, doc)


def load_submission(doc: dict) -> QuizSubmission:
    return _load("submissions", QuizSubmission, doc)


def load_user(doc: dict) -> User:
    return _load("users", User, doc)


def load_many(docs: Iterable[dict], loader: Callable[[dict], T]) -> List[T]:
    """Load a query result, skipping documents that cannot be migrated."""
    loaded = []
    for doc in docs:
        try:
            loaded.append(loader(doc))
        except PersistenceError:
            logger.warning("Skipping malformed document", extra={"doc_id": str(doc.get("_id"))})
    return loaded
