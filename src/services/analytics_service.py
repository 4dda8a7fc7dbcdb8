from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from src.domain.models.db_models import Quiz, QuizSubmission
from src.domain.models.migrations import load_many, load_submission, stored_names
from src.domain.models.session import Session
from src.domain.models.stats_models import (
    AnswerBreakdown,
    QuestionPerformance,
    QuizReport,
    QuizStats,
    ScoreBucket,
)
from src.domain.repositories import SUBMISSIONS, IPersistenceGateway
from src.infrastructure.database import gateway as flask_gateway
from src.services.quiz_service import get_quiz
from qi_utils.logger_utils import logger


def _get_gateway(gateway: Optional[IPersistenceGateway] = None) -> IPersistenceGateway:
    return gateway if gateway is not None else flask_gateway


def compute_stats(quiz: Quiz, submissions: Sequence[QuizSubmission]) -> Optional[QuizStats]:
    """
    Aggregate a quiz's submissions.

    Returns None when there are no submissions: callers show an empty state
    instead of averages over nothing. Answers to questions that were removed
    from the quiz after submitting are left out of the per-question figures.
    """
    if not submissions:
        return None

    performance: Dict[str, QuestionPerformance] = {
        question_id: QuestionPerformance() for question_id in quiz.question_ids()
    }

    scores = [s.score for s in submissions]
    for submission in submissions:
        for answer in submission.answers:
            perf = performance.get(answer.question_id)
            if perf is None:
                continue
            perf.total_answers += 1
            if answer.is_correct:
                perf.correct_count += 1

    return QuizStats(
        total_responses=len(submissions),
        average_score=sum(scores) / len(scores),
        highest_score=max(scores),
        lowest_score=min(scores),
        question_performance=performance,
    )


def score_distribution(quiz: Quiz, submissions: Sequence[QuizSubmission]) -> List[ScoreBucket]:
    """
    Number of submissions for every possible score 0..len(questions).

    Scores above the current question count (the quiz lost questions after
    it was taken) extend the range so every submission lands in a bucket.
    """
    if not submissions:
        return []
    top = max(len(quiz.questions), max(s.score for s in submissions))
    counts = [0] * (top + 1)
    for submission in submissions:
        counts[submission.score] += 1
    return [ScoreBucket(score=score, count=count) for score, count in enumerate(counts)]


def answer_breakdown(stats: Optional[QuizStats]) -> AnswerBreakdown:
    if stats is None:
        return AnswerBreakdown()
    correct = sum(p.correct_count for p in stats.question_performance.values())
    total = sum(p.total_answers for p in stats.question_performance.values())
    return AnswerBreakdown(correct=correct, incorrect=total - correct)


def get_submissions(quiz_id: str, gateway: Optional[IPersistenceGateway] = None) -> List[QuizSubmission]:
    docs = _get_gateway(gateway).query(SUBMISSIONS, [(stored_names(SUBMISSIONS, "quiz_id"), "==", quiz_id)])
    return load_many(docs, load_submission)


def get_stats(
    session: Session,
    quiz_id: str,
    gateway: Optional[IPersistenceGateway] = None,
) -> Optional[QuizStats]:
    """Stats for a quiz owned by the acting user; None before the first submission."""
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)
    return compute_stats(quiz, get_submissions(quiz_id, gw))


def get_quiz_report(
    session: Session,
    quiz_id: str,
    gateway: Optional[IPersistenceGateway] = None,
) -> QuizReport:
    gw = _get_gateway(gateway)
    quiz = get_quiz(session, quiz_id, gw)
    submissions = get_submissions(quiz_id, gw)
    stats = compute_stats(quiz, submissions)

    average_percent = None
    if stats is not None and quiz.questions:
        average_percent = stats.average_score / len(quiz.questions) * 100

    logger.debug(
        "Built quiz report",
        extra={"quiz_id": quiz_id, "submissions": len(submissions), "component": "analytics_service"},
    )
    return QuizReport(
        quiz_id=quiz_id,
        title=quiz.title,
        total_questions=len(quiz.questions),
        stats=stats,
        average_percent=average_percent,
        score_distribution=score_distribution(quiz, submissions),
        answer_breakdown=answer_breakdown(stats),
    )
