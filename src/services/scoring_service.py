"""Grading of a respondent's attempt. Pure functions, no store access."""
from dataclasses import dataclass, field
from typing import List, Sequence

from src.domain.errors import IncompleteAttemptError, ValidationError
from src.domain.models.db_models import Question, StudentAnswer

UNANSWERED = -1


@dataclass
class GradedAttempt:
    answers: List[StudentAnswer] = field(default_factory=list)
    score: int = 0
    total_questions: int = 0


def grade_attempt(questions: Sequence[Question], selections: Sequence[int]) -> GradedAttempt:
    """
    Grade one attempt: one selection per question, in quiz order.

    Raises IncompleteAttemptError when the selection count does not match the
    questions or a question was left unanswered, and ValidationError when a
    selection points past the question's options.
    """
    if len(selections) != len(questions):
        raise IncompleteAttemptError(
            f"Expected {len(questions)} answers, got {len(selections)}."
        )

    unanswered = [i + 1 for i, selected in enumerate(selections) if selected < 0]
    if unanswered:
        raise IncompleteAttemptError(
            f"Please select an answer for question {unanswered[0]}."
        )

    answers = []
    for position, (question, selected) in enumerate(zip(questions, selections), start=1):
        if selected >= len(question.options):
            raise ValidationError(f"Question {position} has no option {selected + 1}.")
        answers.append(StudentAnswer(
            question_id=question.id,
            selected_option=selected,
            is_correct=selected == question.correct_option,
        ))

    return GradedAttempt(
        answers=answers,
        score=sum(1 for a in answers if a.is_correct),
        total_questions=len(questions),
    )


def result_message(score: int, total: int) -> str:
    """Feedback line shown with the result."""
    if score == total:
        return "Perfect score! Excellent work!"
    if score >= total / 2:
        return "Good job!"
    return "Better luck next time!"
