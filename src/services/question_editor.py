"""
Editing helpers for the questions of a quiz.

Each helper returns a new Question (or list) instead of mutating its input.
"""
from typing import List

from src.domain.errors import ValidationError
from src.domain.models.db_models import Question
from qi_utils.validation import MAX_OPTIONS, MIN_OPTIONS, QUIZ_ERRORS


def add_option(question: Question, text: str = "") -> Question:
    if len(question.options) >= MAX_OPTIONS:
        raise ValidationError(f"A question can have at most {MAX_OPTIONS} options.")
    return question.model_copy(update={"options": [*question.options, text]})


def remove_option(question: Question, index: int) -> Question:
    """
    Drop the option at ``index`` and keep correct_option pointing at the same text.
    Removing the correct option itself makes option 0 the correct one.
    """
    if len(question.options) <= MIN_OPTIONS:
        raise ValidationError(f"A question needs at least {MIN_OPTIONS} options.")
    if not 0 <= index < len(question.options):
        raise ValidationError(f"There is no option {index + 1}.")

    options = [o for i, o in enumerate(question.options) if i != index]
    correct = question.correct_option
    if correct == index:
        correct = 0
    elif correct > index:
        correct -= 1
    return question.model_copy(update={"options": options, "correct_option": correct})


def set_correct_option(question: Question, index: int) -> Question:
    if not 0 <= index < len(question.options):
        raise ValidationError(f"There is no option {index + 1}.")
    return question.model_copy(update={"correct_option": index})


def add_question(questions: List[Question], question: Question) -> List[Question]:
    return [*questions, question]


def remove_question(questions: List[Question], index: int) -> List[Question]:
    if len(questions) <= 1:
        raise ValidationError(QUIZ_ERRORS["no_questions"])
    if not 0 <= index < len(questions):
        raise ValidationError(f"There is no question {index + 1}.")
    return [q for i, q in enumerate(questions) if i != index]
