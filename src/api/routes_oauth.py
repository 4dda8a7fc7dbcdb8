"""OAuth routes for Google Sign-In."""
from authlib.integrations.base_client.errors import OAuthError
from authlib.integrations.flask_client import OAuth
from flask import Blueprint, jsonify, redirect, url_for
from flask_login import login_user

from src.api.routes_auth import FlaskUser, get_identity
from src.domain.errors import AuthenticationError
from src.infrastructure.config import settings
from qi_utils.logger_utils import logger


oauth_bp = Blueprint('oauth', __name__)

# Initialize OAuth
oauth = OAuth()

def init_oauth(app):
    """Initialize OAuth with the Flask app."""
    oauth.init_app(app)

    # Register Google OAuth
    if settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
        oauth.register(
            name='google',
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
            client_kwargs={
                'scope': 'openid email profile'
            }
        )
        logger.info("Google OAuth configured")


# ============ Google OAuth Routes ============

@oauth_bp.route('/google/login')
def google_login():
    """Initiate Google OAuth login."""
    if not settings.GOOGLE_CLIENT_ID:
        return jsonify({"error": "Google sign-in is not configured"}), 404

    redirect_uri = url_for('oauth.google_callback', _external=True)
    return oauth.google.authorize_redirect(redirect_uri)


@oauth_bp.route('/google/callback')
def google_callback():
    """Handle Google OAuth callback."""
    try:
        token = oauth.google.authorize_access_token()
    except OAuthError as e:
        logger.error(f"Google OAuth error: {e}", exc_info=True)
        raise AuthenticationError("Google sign-in failed. Please try again.") from e

    user_info = token.get('userinfo') or {}
    session = get_identity().sign_in_with_provider('google', dict(user_info))
    login_user(FlaskUser(session), remember=True)
    logger.info("OAuth login", extra={"user_id": session.user_id, "provider": "google"})
    return redirect(settings.BASE_URL or '/')
