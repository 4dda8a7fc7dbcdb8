"""Authentication routes for signup, login, logout and password reset."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import LoginManager, current_user, login_required, login_user, logout_user
from pydantic import ValidationError as PydanticValidationError

from src.domain.errors import AuthenticationError
from src.domain.models.api_models import CredentialsRequest, NewPasswordRequest, PasswordResetRequest
from src.domain.models.session import Session
from src.domain.repositories import IIdentityProvider
from src.services.auth_service import session_for
from qi_utils.logger_utils import logger

auth_bp = Blueprint('auth', __name__)

# Initialize Login Manager
login_manager = LoginManager()


class FlaskUser:
    """Flask-Login compatible wrapper around a session."""

    def __init__(self, session: Session, is_active: bool = True):
        self.session = session
        self.id = session.user_id
        self.is_authenticated = True
        self.is_active = is_active
        self.is_anonymous = False

    def get_id(self):
        return self.id


def get_identity() -> IIdentityProvider:
    return current_app.extensions['identity']


def current_session() -> Session:
    """The acting user for the current request. Only valid behind @login_required."""
    return current_user.session


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login."""
    user = get_identity().get_user(user_id)
    if user and user.is_active:
        return FlaskUser(session_for(user))
    return None


@login_manager.unauthorized_handler
def unauthorized():
    """Handle unauthorized access."""
    return jsonify({"error": "Authentication required"}), 401


def _parse(model, payload):
    try:
        return model(**(payload or {})), None
    except PydanticValidationError as e:
        return None, (jsonify({"error": e.errors(include_url=False)}), 400)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Create an account and start a session."""
    req, error = _parse(CredentialsRequest, request.get_json(silent=True))
    if error:
        return error

    session = get_identity().sign_up(req.email, req.password, req.display_name)
    login_user(FlaskUser(session))
    return jsonify(session.model_dump()), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    req, error = _parse(CredentialsRequest, request.get_json(silent=True))
    if error:
        return error

    session = get_identity().sign_in(req.email, req.password)
    login_user(FlaskUser(session), remember=bool(request.args.get('remember')))
    return jsonify(session.model_dump()), 200


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout the current user."""
    session = current_session()
    logout_user()
    get_identity().sign_out(session)
    return jsonify({"status": "signed_out"}), 200


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(current_session().model_dump()), 200


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    """Request password reset."""
    req, error = _parse(PasswordResetRequest, request.get_json(silent=True))
    if error:
        return error

    get_identity().send_password_reset(req.email)
    # Same answer whether or not the address exists
    return jsonify({"message": "If the email exists, a reset link has been sent."}), 202


@auth_bp.route('/reset-password/<token>', methods=['POST'])
def reset_password(token):
    """Reset password with token."""
    req, error = _parse(NewPasswordRequest, request.get_json(silent=True))
    if error:
        return error

    if not token or len(token) < 10:
        logger.warning("Invalid reset token format")
        raise AuthenticationError("The password reset link is invalid or has expired.")

    get_identity().reset_password(token, req.password)
    return jsonify({"message": "Password changed. You can now sign in."}), 200
