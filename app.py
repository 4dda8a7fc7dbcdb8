import os
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from src.infrastructure.config import settings
from src.infrastructure import database
from src.domain import errors
from src.services.auth_service import GatewayIdentityProvider
from qi_utils.logger_utils import logger

# Import Blueprints
from src.api.routes_auth import auth_bp, login_manager
from src.api.routes_oauth import oauth_bp, init_oauth
from src.api.routes_quiz import quiz_bp
from src.api.routes_take import take_bp
from src.api.routes_cleanup import cleanup_bp

# Most specific classes first; the first match wins.
ERROR_STATUS = (
    (errors.ValidationError, 400),
    (errors.AuthenticationError, 401),
    (errors.AuthorizationError, 403),
    (errors.NotFoundError, 404),
    (errors.ConflictError, 409),
    (errors.IncompleteAttemptError, 422),
    (errors.PersistenceError, 503),
)


def status_for(error: errors.BaseAppException) -> int:
    for error_class, status in ERROR_STATUS:
        if isinstance(error, error_class):
            return status
    return 500


def log_auth_state(session):
    if session is None:
        logger.info("Auth state: signed out")
    else:
        logger.info("Auth state: signed in", extra={"user_id": session.user_id})


def create_app(gateway=None, identity=None):
    """
    Application factory for Flask.

    `gateway` and `identity` replace the MongoDB-backed defaults, which is
    how tests run the app against an in-memory store.
    """
    app = Flask(__name__)

    # --- Core Configuration ---
    app.config.from_object(settings)
    app.config['JSON_AS_ASCII'] = False
    logger.setLevel(settings.LOG_LEVEL)

    # --- Security Configuration ---
    app.config['SESSION_COOKIE_SECURE'] = settings.FLASK_ENV == 'production'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    CORS(app, resources={r"/api/*": {"origins": "*"}}, supports_credentials=True)

    # --- Initialize Extensions ---
    database.init_app(app, gateway=gateway)
    if identity is None:
        identity = GatewayIdentityProvider(gateway if gateway is not None else database.gateway)
    app.extensions['identity'] = identity
    identity.on_auth_state_change(log_auth_state)
    login_manager.init_app(app)
    init_oauth(app)

    if gateway is None and settings.FLASK_ENV != 'testing':
        with app.app_context():
            database.get_gateway().ensure_indexes()

    # --- Blueprints Registration ---
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(oauth_bp, url_prefix='/oauth')
    app.register_blueprint(quiz_bp, url_prefix='/api/quizzes')
    app.register_blueprint(take_bp, url_prefix='/api/take')
    app.register_blueprint(cleanup_bp, url_prefix='/api/cleanup')

    # --- Request Hooks ---
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        return response

    # --- Health Checks ---
    @app.route('/health')
    def health_check():
        return jsonify({"status": "healthy"}), 200

    @app.route('/health/detailed')
    def detailed_health_check():
        health_status = {"status": "healthy", "components": {}}
        if database.get_gateway().ping():
            health_status["components"]["store"] = {"status": "healthy"}
        else:
            health_status["components"]["store"] = {"status": "unhealthy"}
            health_status["status"] = "unhealthy"
        return jsonify(health_status), 503 if health_status["status"] == "unhealthy" else 200

    # --- Error Handling ---
    @app.errorhandler(errors.BaseAppException)
    def handle_app_error(error):
        status = status_for(error)
        log = logger.error if status >= 500 else logger.info
        log(
            f"{type(error).__name__} for path {request.path}: {error}",
            extra={"status": status, "path": request.path},
        )
        return jsonify({"error": str(error), "type": type(error).__name__}), status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        logger.warning(f"HTTP {error.code} for path: {request.path}")
        return jsonify({"error": error.name}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        logger.error(f"Unhandled exception for path {request.path}: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error"}), 500

    logger.info(f"Flask App created successfully in {settings.FLASK_ENV} mode.")
    return app

if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=int(os.environ.get("PORT", 5000)))
