"""
Batch removal of a creator's quizzes.

Both sweeps select quizzes of the acting user only, then delete each quiz's
submissions before the quiz itself. A store failure on one quiz skips that
quiz; the rest of the batch still runs.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from src.domain.errors import AuthorizationError, PersistenceError, ValidationError
from src.domain.models.migrations import stored_names
from src.domain.models.session import Session
from src.domain.models.stats_models import SweepResult
from src.domain.repositories import QUIZZES, Filter, IPersistenceGateway
from src.infrastructure.config import settings
from src.infrastructure.database import gateway as flask_gateway
from src.services.quiz_service import cascade_delete
from qi_utils.logger_utils import logger


def _get_gateway(gateway: Optional[IPersistenceGateway] = None) -> IPersistenceGateway:
    return gateway if gateway is not None else flask_gateway


def _owner_filter(session: Optional[Session]) -> Filter:
    if session is None or not session.user_id:
        raise AuthorizationError("You must be signed in to clean up quizzes.")
    return (stored_names(QUIZZES, "created_by"), "==", session.user_id)


def _check_threshold(name: str, value: int) -> None:
    if value < 0:
        raise ValidationError(f"{name} must not be negative.")


def _sweep(gateway: IPersistenceGateway, filters: List[Filter], sweep: str) -> SweepResult:
    quiz_docs = gateway.query(QUIZZES, filters)
    result = SweepResult()

    for doc in quiz_docs:
        quiz_id = doc["_id"]
        try:
            cascade_delete(quiz_id, gateway)
        except PersistenceError:
            logger.warning(
                "Sweep skipped quiz",
                extra={"quiz_id": quiz_id, "sweep": sweep, "component": "cleanup_service"},
                exc_info=True,
            )
            result.skipped_quiz_ids.append(quiz_id)
            continue
        result.deleted_count += 1

    logger.info(
        "Sweep finished",
        extra={
            "sweep": sweep,
            "selected": len(quiz_docs),
            "deleted": result.deleted_count,
            "skipped": len(result.skipped_quiz_ids),
            "component": "cleanup_service",
        },
    )
    return result


def sweep_old_quizzes(
    session: Session,
    days_old: Optional[int] = None,
    gateway: Optional[IPersistenceGateway] = None,
    now: Optional[datetime] = None,
) -> SweepResult:
    """Delete the acting user's quizzes created more than ``days_old`` days ago."""
    owner = _owner_filter(session)
    days_old = settings.OLD_QUIZ_DAYS if days_old is None else days_old
    _check_threshold("days_old", days_old)

    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_old)
    return _sweep(
        _get_gateway(gateway),
        [owner, (stored_names(QUIZZES, "created_at"), "<", cutoff)],
        sweep="old",
    )


def sweep_inactive_quizzes(
    session: Session,
    min_responses: Optional[int] = None,
    gateway: Optional[IPersistenceGateway] = None,
) -> SweepResult:
    """Delete the acting user's quizzes with at most ``min_responses`` responses, whatever their age."""
    owner = _owner_filter(session)
    min_responses = settings.INACTIVE_QUIZ_MAX_RESPONSES if min_responses is None else min_responses
    _check_threshold("min_responses", min_responses)

    return _sweep(
        _get_gateway(gateway),
        [owner, ("responses", "<=", min_responses)],
        sweep="inactive",
    )
