from datetime import datetime, timedelta, timezone

from src.domain.repositories import QUIZZES

QUIZ = {
    "title": "Capitals",
    "questions": [{"text": "Capital of France?", "options": ["Paris", "Rome"], "correct_option": 0}],
}


def _create(client, days_ago, gateway):
    quiz_id = client.post('/api/quizzes', json=QUIZ).json['quiz_id']
    gateway.update(QUIZZES, quiz_id, {"created_at": datetime.now(timezone.utc) - timedelta(days=days_ago)})
    return quiz_id


def test_cleanup_requires_login(client):
    assert client.post('/api/cleanup/old').status_code == 401
    assert client.post('/api/cleanup/inactive').status_code == 401


def test_delete_old_quizzes(signed_in_client, gateway):
    client, _ = signed_in_client
    _create(client, 120, gateway)
    recent = _create(client, 5, gateway)

    response = client.post('/api/cleanup/old', json={})

    assert response.status_code == 200
    assert response.json == {"deleted_count": 1, "skipped_quiz_ids": []}
    assert gateway.ids(QUIZZES) == {recent}


def test_delete_old_quizzes_custom_threshold(signed_in_client, gateway):
    client, _ = signed_in_client
    _create(client, 40, gateway)

    response = client.post('/api/cleanup/old', json={"days_old": 30})
    assert response.json['deleted_count'] == 1


def test_delete_inactive_quizzes(signed_in_client, gateway):
    client, _ = signed_in_client
    quiz_id = _create(client, 0, gateway)
    busy = _create(client, 0, gateway)
    gateway.update(QUIZZES, busy, {"responses": 6})

    response = client.post('/api/cleanup/inactive', json={"min_responses": 5})

    assert response.status_code == 200
    assert response.json['deleted_count'] == 1
    assert quiz_id not in gateway.ids(QUIZZES)
    assert busy in gateway.ids(QUIZZES)


def test_negative_threshold(signed_in_client):
    client, _ = signed_in_client
    response = client.post('/api/cleanup/inactive', json={"min_responses": -1})
    assert response.status_code == 400


def test_bad_threshold_type(signed_in_client):
    client, _ = signed_in_client
    response = client.post('/api/cleanup/old', json={"days_old": "soon"})
    assert response.status_code == 400
