"""Creator-facing quiz routes: CRUD, publishing, question editing, sharing and stats."""
from flask import Blueprint, jsonify, request
from flask_login import login_required
from pydantic import ValidationError as PydanticValidationError

from src.api.routes_auth import current_session
from src.domain.models.api_models import (
    CorrectOptionRequest,
    OptionRequest,
    PublishRequest,
    QuestionInput,
    QuizRequest,
)
from src.domain.models.db_models import Quiz
from src.services import analytics_service, quiz_service
from qi_utils.logger_utils import logger

quiz_bp = Blueprint('quiz_bp', __name__)


def quiz_to_json(quiz: Quiz) -> dict:
    """Creator view: full quiz including correct options."""
    data = quiz.model_dump(mode="json")
    data.pop("schema_version", None)
    return data


def _parse_body(model):
    try:
        return model(**(request.get_json(silent=True) or {})), None
    except PydanticValidationError as e:
        return None, (jsonify({"error": e.errors(include_url=False)}), 400)


@quiz_bp.route('', methods=['GET'])
@login_required
def list_quizzes():
    quizzes = quiz_service.get_quizzes_by_owner(current_session())
    return jsonify({"quizzes": [quiz_to_json(q) for q in quizzes]}), 200


@quiz_bp.route('', methods=['POST'])
@login_required
def create_quiz():
    """Save a quiz as a draft, or publish it right away."""
    req, error = _parse_body(QuizRequest)
    if error:
        return error

    quiz_id = quiz_service.create_quiz(
        current_session(),
        title=req.title,
        description=req.description,
        questions=req.questions,
        publish=req.publish,
    )
    return jsonify({
        "quiz_id": quiz_id,
        "is_published": req.publish,
        "share_url": quiz_service.take_url(quiz_id, request.url_root),
    }), 201


@quiz_bp.route('/<string:quiz_id>', methods=['GET'])
@login_required
def get_quiz(quiz_id: str):
    quiz = quiz_service.get_quiz(current_session(), quiz_id)
    return jsonify(quiz_to_json(quiz)), 200


@quiz_bp.route('/<string:quiz_id>', methods=['PUT'])
@login_required
def update_quiz(quiz_id: str):
    req, error = _parse_body(QuizRequest)
    if error:
        return error

    quiz = quiz_service.update_quiz(
        current_session(),
        quiz_id,
        title=req.title,
        description=req.description,
        questions=req.questions,
    )
    return jsonify(quiz_to_json(quiz)), 200


@quiz_bp.route('/<string:quiz_id>', methods=['DELETE'])
@login_required
def delete_quiz(quiz_id: str):
    quiz_service.delete_quiz(current_session(), quiz_id)
    return jsonify({"status": "deleted", "quiz_id": quiz_id}), 200


@quiz_bp.route('/<string:quiz_id>/publish', methods=['POST'])
@login_required
def publish_quiz(quiz_id: str):
    req, error = _parse_body(PublishRequest)
    if error:
        return error

    quiz = quiz_service.set_published(current_session(), quiz_id, req.published)
    return jsonify({"quiz_id": quiz_id, "is_published": quiz.is_published}), 200


# ============ Question editing ============

@quiz_bp.route('/<string:quiz_id>/questions', methods=['POST'])
@login_required
def add_question(quiz_id: str):
    """Append one question to an existing quiz."""
    req, error = _parse_body(QuestionInput)
    if error:
        return error
    quiz = quiz_service.add_question(current_session(), quiz_id, req)
    return jsonify(quiz_to_json(quiz)), 201


@quiz_bp.route('/<string:quiz_id>/questions/<string:question_id>', methods=['DELETE'])
@login_required
def remove_question(quiz_id: str, question_id: str):
    quiz = quiz_service.remove_question(current_session(), quiz_id, question_id)
    return jsonify(quiz_to_json(quiz)), 200


@quiz_bp.route('/<string:quiz_id>/questions/<string:question_id>/options', methods=['POST'])
@login_required
def add_option(quiz_id: str, question_id: str):
    req, error = _parse_body(OptionRequest)
    if error:
        return error
    quiz = quiz_service.add_option(current_session(), quiz_id, question_id, req.text)
    return jsonify(quiz_to_json(quiz)), 201


@quiz_bp.route('/<string:quiz_id>/questions/<string:question_id>/options/<int:index>', methods=['DELETE'])
@login_required
def remove_option(quiz_id: str, question_id: str, index: int):
    """Remove the option at a 0-based index; removing the correct one makes the first option correct."""
    quiz = quiz_service.remove_option(current_session(), quiz_id, question_id, index)
    return jsonify(quiz_to_json(quiz)), 200


@quiz_bp.route('/<string:quiz_id>/questions/<string:question_id>/correct', methods=['PUT'])
@login_required
def set_correct_option(quiz_id: str, question_id: str):
    req, error = _parse_body(CorrectOptionRequest)
    if error:
        return error
    quiz = quiz_service.set_correct_option(current_session(), quiz_id, question_id, req.correct_option)
    return jsonify(quiz_to_json(quiz)), 200


@quiz_bp.route('/<string:quiz_id>/share', methods=['GET'])
@login_required
def share_quiz(quiz_id: str):
    return jsonify(quiz_service.share_link(current_session(), quiz_id, request.url_root)), 200


@quiz_bp.route('/<string:quiz_id>/stats', methods=['GET'])
@login_required
def quiz_stats(quiz_id: str):
    """
    Analytics for one quiz.

    Before the first submission `stats` is null and `has_data` is false;
    clients show an empty state instead of zeros.
    """
    report = analytics_service.get_quiz_report(current_session(), quiz_id)
    payload = report.model_dump(mode="json")
    payload["has_data"] = report.has_data
    if report.stats is not None:
        for question_id, perf in report.stats.question_performance.items():
            payload["stats"]["question_performance"][question_id]["percent_correct"] = perf.percent_correct
    logger.debug("Served quiz stats", extra={"quiz_id": quiz_id, "has_data": report.has_data})
    return jsonify(payload), 200
