import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

# Set required environment variables before any application import
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ.setdefault('MONGO_URI', 'mongodb://localhost:27017/test')
os.environ.setdefault('FLASK_ENV', 'testing')

from src.domain.models.db_models import Quiz, QuizSubmission, StudentAnswer  # noqa: E402
from src.domain.models.session import Session  # noqa: E402
from src.domain.repositories import QUIZZES, SUBMISSIONS  # noqa: E402
from tests.fakes import InMemoryGateway, sample_questions  # noqa: E402


@pytest.fixture
def gateway():
    """A fresh in-memory store for each test."""
    return InMemoryGateway()


@pytest.fixture
def reset_mailer():
    return MagicMock(return_value=True)


@pytest.fixture
def identity(gateway, reset_mailer):
    from src.services.auth_service import GatewayIdentityProvider
    return GatewayIdentityProvider(gateway, send_reset_email=reset_mailer)


@pytest.fixture
def app(gateway, identity):
    """Create and configure a new app instance backed by the in-memory store."""
    from app import create_app
    app = create_app(gateway=gateway, identity=identity)
    app.config.update({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
    })
    yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def signed_in_client(client):
    """A client with a freshly signed-up creator. Returns (client, session dict)."""
    response = client.post('/auth/signup', json={
        "email": "creator@example.com",
        "password": "correct-horse",
        "display_name": "Creator",
    })
    assert response.status_code == 201
    return client, response.json


@pytest.fixture
def owner():
    return Session(user_id="owner-1", email="owner@example.com", display_name="Owner")


@pytest.fixture
def stranger():
    return Session(user_id="stranger-1", email="stranger@example.com")


@pytest.fixture
def make_quiz(gateway):
    """Insert a quiz straight into the store and return its id."""
    def _make(owner_id="owner-1", days_ago=0, responses=0, published=True, correct=(0, 1, 2), title="Capitals"):
        quiz = Quiz(
            title=title,
            questions=sample_questions(correct),
            created_by=owner_id,
            created_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
            is_published=published,
            responses=responses,
        )
        return gateway.insert(QUIZZES, quiz.to_dict())
    return _make


@pytest.fixture
def make_submission(gateway):
    """Insert a graded submission for a quiz; `correct` flags each answer."""
    def _make(quiz_id, correct=(True, True, False), name="Student"):
        answers = [
            StudentAnswer(question_id=f"q{i + 1}", selected_option=0, is_correct=flag)
            for i, flag in enumerate(correct)
        ]
        submission = QuizSubmission(
            quiz_id=quiz_id,
            student_name=name,
            answers=answers,
            score=sum(correct),
            total_questions=len(answers),
        )
        return gateway.insert(SUBMISSIONS, submission.to_dict())
    return _make


@pytest.fixture
def make_legacy_quiz(gateway):
    """Insert a quiz in the camelCase layout of the original web client."""
    def _make(quiz_id="legacy-1", owner_id="owner-1", days_ago=0, responses=0):
        gateway.insert(QUIZZES, {
            "_id": quiz_id,
            "title": "Old quiz",
            "createdBy": owner_id,
            "createdAt": datetime.now(timezone.utc) - timedelta(days=days_ago),
            "isPublished": True,
            "responses": responses,
            "questions": [
                {"id": f"q{i + 1}", "text": f"Question {i + 1}?", "options": ["A", "B", "C"], "correctOption": c}
                for i, c in enumerate((0, 1, 2))
            ],
        })
        return quiz_id
    return _make


@pytest.fixture
def make_legacy_submission(gateway):
    def _make(quiz_id, submission_id="legacy-sub", correct=(True, False, False)):
        gateway.insert(SUBMISSIONS, {
            "_id": submission_id,
            "quizId": quiz_id,
            "studentName": "Old student",
            "submittedAt": datetime(2020, 1, 1, tzinfo=timezone.utc),
            "answers": [
                {"questionId": f"q{i + 1}", "selectedOption": 0, "isCorrect": flag}
                for i, flag in enumerate(correct)
            ],
            "score": sum(correct),
            "totalQuestions": len(correct),
        })
        return submission_id
    return _make
