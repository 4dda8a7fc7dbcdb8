"""Respondent routes behind a shared quiz link. No login required."""
from flask import Blueprint, jsonify, request
from pydantic import ValidationError as PydanticValidationError

from src.domain.models.api_models import SubmissionResponse, SubmitAttemptRequest
from src.services import quiz_service
from src.services.scoring_service import result_message

take_bp = Blueprint('take_bp', __name__)


@take_bp.route('/<string:quiz_id>', methods=['GET'])
def open_quiz(quiz_id: str):
    """The published quiz without its answers."""
    quiz = quiz_service.get_published_quiz(quiz_id)
    return jsonify(quiz.public_view()), 200


@take_bp.route('/<string:quiz_id>/submit', methods=['POST'])
def submit_attempt(quiz_id: str):
    try:
        req = SubmitAttemptRequest(**(request.get_json(silent=True) or {}))
    except PydanticValidationError as e:
        return jsonify({"error": e.errors(include_url=False)}), 400

    submission = quiz_service.submit_attempt(quiz_id, req.student_name, req.selections)
    response = SubmissionResponse(
        submission_id=submission.id,
        score=submission.score,
        total_questions=submission.total_questions,
        message=result_message(submission.score, submission.total_questions),
        answers=[a.model_dump() for a in submission.answers],
    )
    return jsonify(response.model_dump()), 201
