from flask import Blueprint, jsonify, request
from flask_login import login_required
from pydantic import ValidationError as PydanticValidationError

from src.api.routes_auth import current_session
from src.domain.models.api_models import SweepInactiveRequest, SweepOldRequest
from src.services import cleanup_service

cleanup_bp = Blueprint('cleanup_bp', __name__)


@cleanup_bp.route('/old', methods=['POST'])
@login_required
def delete_old_quizzes():
    """Delete the caller's quizzes older than `days_old` days (default 90)."""
    try:
        req = SweepOldRequest(**(request.get_json(silent=True) or {}))
    except PydanticValidationError as e:
        return jsonify({"error": e.errors(include_url=False)}), 400

    result = cleanup_service.sweep_old_quizzes(current_session(), req.days_old)
    return jsonify(result.model_dump()), 200


@cleanup_bp.route('/inactive', methods=['POST'])
@login_required
def delete_inactive_quizzes():
    """Delete the caller's quizzes with at most `min_responses` responses (default 5)."""
    try:
        req = SweepInactiveRequest(**(request.get_json(silent=True) or {}))
    except PydanticValidationError as e:
        return jsonify({"error": e.errors(include_url=False)}), 400

    result = cleanup_service.sweep_inactive_quizzes(current_session(), req.min_responses)
    return jsonify(result.model_dump()), 200
