from datetime import datetime, timedelta, timezone

import pytest

from src.domain.errors import AuthorizationError, PersistenceError, ValidationError
from src.domain.models.db_models import Quiz
from src.domain.repositories import QUIZZES, SUBMISSIONS
from src.services import cleanup_service
from tests.fakes import sample_questions


class TestSweepOldQuizzes:
    """Tests for removing quizzes by age."""

    def test_removes_only_old_quizzes_of_the_caller(self, gateway, owner, make_quiz, make_submission):
        old = make_quiz(days_ago=100, responses=10)
        recent = make_quiz(days_ago=10)
        someone_elses = make_quiz(owner_id="stranger-1", days_ago=200)
        make_submission(old)
        make_submission(old)
        kept_submission = make_submission(recent)

        result = cleanup_service.sweep_old_quizzes(owner, 90, gateway)

        assert result.deleted_count == 1
        assert result.skipped_quiz_ids == []
        assert gateway.ids(QUIZZES) == {recent, someone_elses}
        assert gateway.ids(SUBMISSIONS) == {kept_submission}

    def test_default_threshold_is_ninety_days(self, gateway, owner, make_quiz):
        make_quiz(days_ago=91)
        kept = make_quiz(days_ago=89)

        result = cleanup_service.sweep_old_quizzes(owner, gateway=gateway)

        assert result.deleted_count == 1
        assert gateway.ids(QUIZZES) == {kept}

    def test_cutoff_is_strict(self, gateway, owner):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        exactly = Quiz(title="Edge", questions=sample_questions(), created_by="owner-1",
                       created_at=now - timedelta(days=90))
        quiz_id = gateway.insert(QUIZZES, exactly.to_dict())

        result = cleanup_service.sweep_old_quizzes(owner, 90, gateway, now=now)

        assert result.deleted_count == 0
        assert quiz_id in gateway.ids(QUIZZES)

    def test_nothing_to_remove(self, gateway, owner, make_quiz):
        make_quiz(days_ago=1)
        result = cleanup_service.sweep_old_quizzes(owner, 90, gateway)
        assert result.deleted_count == 0

    def test_negative_threshold(self, gateway, owner):
        with pytest.raises(ValidationError):
            cleanup_service.sweep_old_quizzes(owner, -1, gateway)

    def test_requires_signed_in_user(self, gateway, make_quiz):
        make_quiz(days_ago=100)
        with pytest.raises(AuthorizationError):
            cleanup_service.sweep_old_quizzes(None, 90, gateway)
        assert len(gateway.ids(QUIZZES)) == 1


class TestSweepInactiveQuizzes:
    """Tests for removing quizzes by response count."""

    def test_removes_quizzes_at_or_below_threshold_regardless_of_age(self, gateway, owner, make_quiz):
        make_quiz(responses=0)
        make_quiz(responses=5, days_ago=1)
        busy = make_quiz(responses=6, days_ago=400)
        someone_elses = make_quiz(owner_id="stranger-1", responses=0)

        result = cleanup_service.sweep_inactive_quizzes(owner, gateway=gateway)

        assert result.deleted_count == 2
        assert gateway.ids(QUIZZES) == {busy, someone_elses}

    def test_old_but_busy_quiz(self, gateway, owner, make_quiz):
        """A 100 day old quiz with 10 responses goes in the age sweep only."""
        quiz_id = make_quiz(days_ago=100, responses=10)

        assert cleanup_service.sweep_inactive_quizzes(owner, 5, gateway).deleted_count == 0
        assert quiz_id in gateway.ids(QUIZZES)
        assert cleanup_service.sweep_old_quizzes(owner, 90, gateway).deleted_count == 1

    def test_zero_threshold_removes_unanswered_quizzes(self, gateway, owner, make_quiz):
        make_quiz(responses=0)
        kept = make_quiz(responses=1)
        cleanup_service.sweep_inactive_quizzes(owner, 0, gateway)
        assert gateway.ids(QUIZZES) == {kept}

    def test_negative_threshold(self, gateway, owner):
        with pytest.raises(ValidationError):
            cleanup_service.sweep_inactive_quizzes(owner, -3, gateway)


class TestSweepFailures:
    def test_failing_quiz_is_skipped_and_others_removed(self, gateway, owner, make_quiz, make_submission):
        broken = make_quiz(responses=0)
        healthy = make_quiz(responses=0)
        removed_submission = make_submission(broken)
        stuck_submission = make_submission(broken)
        make_submission(healthy)
        gateway.fail_deletes.add((SUBMISSIONS, stuck_submission))

        result = cleanup_service.sweep_inactive_quizzes(owner, 5, gateway)

        assert result.deleted_count == 1
        assert result.skipped_quiz_ids == [broken]
        assert gateway.ids(QUIZZES) == {broken}
        assert removed_submission not in gateway.ids(SUBMISSIONS)
        assert gateway.ids(SUBMISSIONS) == {stuck_submission}

    def test_rerun_finishes_an_interrupted_sweep(self, gateway, owner, make_quiz, make_submission):
        broken = make_quiz(days_ago=120)
        make_submission(broken)
        stuck = make_submission(broken)
        gateway.fail_deletes.add((SUBMISSIONS, stuck))
        cleanup_service.sweep_old_quizzes(owner, 90, gateway)

        result = cleanup_service.sweep_old_quizzes(owner, 90, gateway)

        assert result.deleted_count == 1
        assert result.skipped_quiz_ids == []
        assert gateway.ids(QUIZZES) == set()
        assert gateway.ids(SUBMISSIONS) == set()

    def test_rerun_on_clean_store_does_nothing(self, gateway, owner, make_quiz):
        make_quiz(days_ago=120)
        cleanup_service.sweep_old_quizzes(owner, 90, gateway)
        assert cleanup_service.sweep_old_quizzes(owner, 90, gateway).deleted_count == 0

    def test_selection_failure_propagates(self, gateway, owner, make_quiz):
        make_quiz(days_ago=120)
        gateway.fail_queries = True
        with pytest.raises(PersistenceError):
            cleanup_service.sweep_old_quizzes(owner, 90, gateway)


class TestLegacyQuizzes:
    """Quizzes stored in the camelCase layout are swept like current ones."""

    def test_old_sweep_removes_legacy_quiz_and_submissions(
        self, gateway, owner, make_legacy_quiz, make_legacy_submission
    ):
        quiz_id = make_legacy_quiz(days_ago=400, responses=1)
        make_legacy_submission(quiz_id)
        kept = make_legacy_quiz(quiz_id="legacy-recent", days_ago=3)
        make_legacy_quiz(quiz_id="legacy-other", owner_id="stranger-1", days_ago=400)

        result = cleanup_service.sweep_old_quizzes(owner, 90, gateway)

        assert result.deleted_count == 1
        assert gateway.ids(QUIZZES) == {kept, "legacy-other"}
        assert gateway.ids(SUBMISSIONS) == set()

    def test_inactive_sweep_removes_legacy_quiz(self, gateway, owner, make_legacy_quiz, make_legacy_submission):
        quiz_id = make_legacy_quiz(responses=1)
        make_legacy_submission(quiz_id)
        busy = make_legacy_quiz(quiz_id="legacy-busy", responses=12)

        result = cleanup_service.sweep_inactive_quizzes(owner, 5, gateway)

        assert result.deleted_count == 1
        assert gateway.ids(QUIZZES) == {busy}
        assert gateway.ids(SUBMISSIONS) == set()
