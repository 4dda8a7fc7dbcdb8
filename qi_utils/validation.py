from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 6

# creator-facing messages
QUIZ_ERRORS = {
    "no_title": "Please provide a title for your quiz.",
    "no_questions": "A quiz needs at least one question.",
    "no_text": "Question {q} is missing a question text.",
    "few_options": "Question {q} needs at least {n} options.",
    "many_options": "Question {q} can have at most {n} options.",
    "empty_option": "Option {o} in Question {q} is empty.",
    "bad_correct": "Question {q} has no valid correct option.",
    "duplicate_id": "Question {q} reuses an existing question id.",
}


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_title(title: Optional[str]) -> Optional[str]:
    """Returns an error message if the title is unusable, otherwise None."""
    if is_blank(title):
        logger.debug("Validation failed: empty title")
        return QUIZ_ERRORS["no_title"]
    return None


def validate_question(position: int, text: Optional[str], options: List[str], correct_option: int) -> Optional[str]:
    """
    Validate one question. `position` is 1-based, as shown to creators.
    Returns the first error message found, otherwise None.
    """
    if is_blank(text):
        return QUIZ_ERRORS["no_text"].format(q=position)
    if len(options) < MIN_OPTIONS:
        return QUIZ_ERRORS["few_options"].format(q=position, n=MIN_OPTIONS)
    if len(options) > MAX_OPTIONS:
        return QUIZ_ERRORS["many_options"].format(q=position, n=MAX_OPTIONS)
    for index, option in enumerate(options, start=1):
        if is_blank(option):
            return QUIZ_ERRORS["empty_option"].format(o=index, q=position)
    if not 0 <= correct_option < len(options):
        return QUIZ_ERRORS["bad_correct"].format(q=position)
    return None
