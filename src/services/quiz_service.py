from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from src.domain.errors import (
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    QuizNotPublishedError,
    ValidationError,
)
from src.domain.models.api_models import QuestionInput
from src.domain.models.db_models import Question, Quiz, QuizSubmission
from src.domain.models.migrations import load_many, load_quiz, stored_names
from src.domain.models.session import Session
from src.domain.repositories import QUIZZES, SUBMISSIONS, IPersistenceGateway
from src.infrastructure.config import settings
from src.infrastructure.database import gateway as flask_gateway
from src.services import question_editor
from src.services.scoring_service import grade_attempt
from qi_utils.logger_utils import logger
from qi_utils.validation import QUIZ_ERRORS, is_blank, validate_question, validate_title


def _get_gateway(gateway: Optional[IPersistenceGateway] = None) -> IPersistenceGateway:
    """
    Resolve the persistence gateway.

    If a specific gateway is passed (e.g., from tests), use that.
    Otherwise, fall back to the Flask app's gateway proxy.
    """
    return gateway if gateway is not None else flask_gateway


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def build_questions(questions: Sequence[QuestionInput]) -> List[Question]:
    """
    Check editor input and turn it into Question models.

    Raises ValidationError with the first problem found, numbering questions
    and options from 1 the way the editor shows them.
    """
    if not questions:
        raise ValidationError(QUIZ_ERRORS["no_questions"])

    built: List[Question] = []
    seen_ids = set()
    for position, item in enumerate(questions, start=1):
        question = _build_question(position, item, seen_ids)
        seen_ids.add(question.id)
        built.append(question)
    return built


def _build_question(position: int, item: QuestionInput, taken_ids) -> Question:
    error = validate_question(position, item.text, item.options, item.correct_option)
    if error:
        raise ValidationError(error)

    question_id = item.id or str(uuid.uuid4())
    if question_id in taken_ids:
        raise ValidationError(QUIZ_ERRORS["duplicate_id"].format(q=position))

    return Question(
        id=question_id,
        text=item.text.strip(),
        options=[o.strip() for o in item.options],
        correct_option=item.correct_option,
    )


def _validated_title(title: str) -> str:
    error = validate_title(title)
    if error:
        raise ValidationError(error)
    return title.strip()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def _load_quiz(quiz_id: str, gateway: IPersistenceGateway) -> Quiz:
    doc = gateway.get_by_id(QUIZZES, quiz_id)
    if not doc:
        logger.info("Quiz not found", extra={"quiz_id": quiz_id, "component": "quiz_service"})
        raise NotFoundError("Quiz not found")
    return load_quiz(doc)


def require_owner(quiz: Quiz, session: Session) -> None:
    if quiz.created_by != session.user_id:
        logger.warning(
            "Quiz access denied",
            extra={"quiz_id": quiz.id, "user_id": session.user_id, "component": "quiz_service"},
        )
        raise AuthorizationError("You do not have permission to access this quiz")


def get_quiz(session: Session, quiz_id: str, gateway: Optional[IPersistenceGateway] = None) -> Quiz:
    """Creator view of a quiz, including correct answers."""
    quiz = _load_quiz(quiz_id, _get_gateway(gateway))
    require_owner(quiz, session)
    return quiz


def get_quizzes_by_owner(session: Session, gateway: Optional[IPersistenceGateway] = None) -> List[Quiz]:
    """All quizzes created by the acting user, newest first."""
    gw = _get_gateway(gateway)
    docs = gw.query(QUIZZES, [(stored_names(QUIZZES, "created_by"), "==", session.user_id)])
    quizzes = load_many(docs, load_quiz)
    quizzes.sort(key=lambda q: q.created_at, reverse=True)
    return quizzes


def get_published_quiz(quiz_id: str, gateway: Optional[IPersistenceGateway] = None) -> Quiz:
    """The quiz behind a shared link. Drafts are not available to respondents."""
    quiz = _load_quiz(quiz_id, _get_gateway(gateway))
    if not quiz.is_published:
        raise QuizNotPublishedError("This quiz is not available")
    return quiz


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_quiz(
    session: Session,
    title: str,
    description: str,
    questions: Sequence[QuestionInput],
    publish: bool = False,
    gateway: Optional[IPersistenceGateway] = None,
) -> str:
    """
    Validate and store a new quiz. Returns its id.

    Nothing is written unless every check passes.
    """
    gw = _get_gateway(gateway)
    quiz = Quiz(
        title=_validated_title(title),
        description=(description or "").strip(),
        questions=build_questions(questions),
        created_by=session.user_id,
        created_at=datetime.now(timezone.utc),
        is_published=publish,
        responses=0,
    )
    quiz_id = gw.insert(QUIZZES, quiz.to_dict())

    logger.info(
        "Created quiz",
        extra={
            "quiz_id": quiz_id,
            "user_id": session.user_id,
            "questions": len(quiz.questions),
            "published": publish,
            "component": "quiz_service",
        },
    )
    return quiz_id


def _keep_stored_ids(quiz: Quiz, questions: Sequence[QuestionInput]) -> List[QuestionInput]:
    """
    Give id-less questions the stored id of the question at the same position,
    so earlier answers keep counting for them in the stats.
    """
    used = {q.id for q in questions if q.id}
    kept = []
    for position, item in enumerate(questions):
        if not item.id and position < len(quiz.questions):
            stored_id = quiz.questions[position].id
            if stored_id not in used:
                item = item.model_copy(update={"id": stored_id})
                used.add(stored_id)
        kept.append(item)
    return kept


def update_quiz(
    session: Session,
    quiz_id: str,
    title: str,
    description: str,
    questions: Sequence[QuestionInput],
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    """Replace the editable fields of a quiz owned by the acting user."""
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)

    fields = {
        "title": _validated_title(title),
        "description": (description or "").strip(),
        "questions": [q.model_dump() for q in build_questions(_keep_stored_ids(quiz, questions))],
    }
    gw.update(QUIZZES, quiz_id, fields)
    logger.info("Updated quiz", extra={"quiz_id": quiz_id, "component": "quiz_service"})
    return quiz.model_copy(update={
        "title": fields["title"],
        "description": fields["description"],
        "questions": [Question(**q) for q in fields["questions"]],
    })


def set_published(
    session: Session,
    quiz_id: str,
    published: bool,
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)
    if quiz.is_published != published:
        gw.update(QUIZZES, quiz_id, {"is_published": published})
        logger.info("Changed quiz visibility", extra={"quiz_id": quiz_id, "published": published})
    return quiz.model_copy(update={"is_published": published})


# ---------------------------------------------------------------------------
# Question editing
# ---------------------------------------------------------------------------

def _question_position(quiz: Quiz, question_id: str) -> int:
    for index, question in enumerate(quiz.questions):
        if question.id == question_id:
            return index
    raise NotFoundError("Question not found")


def _save_questions(gw: IPersistenceGateway, quiz: Quiz, questions: List[Question]) -> Quiz:
    """Store an edited question list; every question must still be valid."""
    for position, question in enumerate(questions, start=1):
        error = validate_question(position, question.text, question.options, question.correct_option)
        if error:
            raise ValidationError(error)

    gw.update(QUIZZES, quiz.id, {"questions": [q.model_dump() for q in questions]})
    logger.info(
        "Updated quiz questions",
        extra={"quiz_id": quiz.id, "questions": len(questions), "component": "quiz_service"},
    )
    return quiz.model_copy(update={"questions": questions})


def _edit_question(
    session: Session,
    quiz_id: str,
    question_id: str,
    edit: Callable[[Question], Question],
    gateway: Optional[IPersistenceGateway],
) -> Quiz:
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)
    index = _question_position(quiz, question_id)
    questions = list(quiz.questions)
    questions[index] = edit(questions[index])
    return _save_questions(gw, quiz, questions)


def add_option(
    session: Session,
    quiz_id: str,
    question_id: str,
    text: str,
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    return _edit_question(
        session, quiz_id, question_id,
        lambda q: question_editor.add_option(q, (text or "").strip()),
        gateway,
    )


def remove_option(
    session: Session,
    quiz_id: str,
    question_id: str,
    index: int,
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    """Drop one option. If it was the correct one, the first option becomes correct."""
    return _edit_question(
        session, quiz_id, question_id,
        lambda q: question_editor.remove_option(q, index),
        gateway,
    )


def set_correct_option(
    session: Session,
    quiz_id: str,
    question_id: str,
    index: int,
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    return _edit_question(
        session, quiz_id, question_id,
        lambda q: question_editor.set_correct_option(q, index),
        gateway,
    )


def add_question(
    session: Session,
    quiz_id: str,
    question: QuestionInput,
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    """Append a question at the end of the quiz."""
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)
    new = _build_question(len(quiz.questions) + 1, question, set(quiz.question_ids()))
    return _save_questions(gw, quiz, question_editor.add_question(quiz.questions, new))


def remove_question(
    session: Session,
    quiz_id: str,
    question_id: str,
    gateway: Optional[IPersistenceGateway] = None,
) -> Quiz:
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)
    index = _question_position(quiz, question_id)
    return _save_questions(gw, quiz, question_editor.remove_question(quiz.questions, index))


def delete_submissions_for(quiz_id: str, gateway: IPersistenceGateway) -> int:
    """Delete every submission that references ``quiz_id``. Returns how many were found."""
    submissions = gateway.query(SUBMISSIONS, [(stored_names(SUBMISSIONS, "quiz_id"), "==", quiz_id)])
    for doc in submissions:
        gateway.delete(SUBMISSIONS, doc["_id"])
    return len(submissions)


def cascade_delete(quiz_id: str, gateway: IPersistenceGateway) -> None:
    """
    Remove a quiz's submissions, then the quiz.

    The quiz document goes last, so a run interrupted half-way leaves the
    quiz in place and a re-run picks up the remaining submissions.
    """
    removed = delete_submissions_for(quiz_id, gateway)
    gateway.delete(QUIZZES, quiz_id)
    logger.info(
        "Deleted quiz",
        extra={"quiz_id": quiz_id, "submissions_deleted": removed, "component": "quiz_service"},
    )


def delete_quiz(session: Session, quiz_id: str, gateway: Optional[IPersistenceGateway] = None) -> None:
    """Delete a quiz owned by the acting user together with its submissions."""
    gw = _get_gateway(gateway)
    get_quiz(session, quiz_id, gw)
    cascade_delete(quiz_id, gw)


# ---------------------------------------------------------------------------
# Respondent flow
# ---------------------------------------------------------------------------

def submit_attempt(
    quiz_id: str,
    respondent_name: str,
    selections: Sequence[int],
    gateway: Optional[IPersistenceGateway] = None,
) -> QuizSubmission:
    """
    Grade and store a respondent's attempt, then bump the quiz's response counter.

    The counter update is a separate call; if it fails the submission stays
    stored and the failure is only logged.
    """
    gw = _get_gateway(gateway)
    quiz = get_published_quiz(quiz_id, gw)

    if is_blank(respondent_name):
        raise ValidationError("Please enter your name to begin the quiz.")

    graded = grade_attempt(quiz.questions, selections)
    submission = QuizSubmission(
        quiz_id=quiz_id,
        submitted_at=datetime.now(timezone.utc),
        student_name=respondent_name.strip(),
        answers=graded.answers,
        score=graded.score,
        total_questions=graded.total_questions,
    )
    submission_id = gw.insert(SUBMISSIONS, submission.to_dict())
    submission = submission.model_copy(update={"id": submission_id})

    try:
        gw.increment_field(QUIZZES, quiz_id, "responses", 1)
    except PersistenceError:
        logger.warning(
            "Response counter not incremented",
            extra={"quiz_id": quiz_id, "submission_id": submission_id, "component": "quiz_service"},
            exc_info=True,
        )

    logger.info(
        "Stored submission",
        extra={
            "quiz_id": quiz_id,
            "submission_id": submission_id,
            "score": graded.score,
            "total_questions": graded.total_questions,
            "component": "quiz_service",
        },
    )
    return submission


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

def take_url(quiz_id: str, base_url: str = "") -> str:
    """Respondent link for a quiz."""
    root = (settings.BASE_URL or base_url or "").rstrip("/")
    return f"{root}/quiz/{quiz_id}/take"


def share_link(
    session: Session,
    quiz_id: str,
    base_url: str = "",
    gateway: Optional[IPersistenceGateway] = None,
) -> dict:
    quiz = get_quiz(session, quiz_id, _get_gateway(gateway))
    return {
        "quiz_id": quiz_id,
        "title": quiz.title,
        "url": take_url(quiz_id, base_url),
        "is_published": quiz.is_published,
    }
