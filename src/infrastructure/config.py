from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- Core App Settings ---
    FLASK_ENV: str = "production"
    SECRET_KEY: str
    DEBUG: bool = False

    # --- Infrastructure ---
    MONGO_URI: str = "mongodb://localhost:27017/quizit"
    GATEWAY_RETRY_ATTEMPTS: int = 3

    # --- Security ---
    SESSION_COOKIE_SECURE: bool = True
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = 'Lax'
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_RESET_TTL_HOURS: int = 1

    # --- OAuth ---
    BASE_URL: str = ""  # Public base URL for share links and OAuth redirects
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""

    # --- Email Service ---
    MAIL_SERVER: str = ""
    MAIL_PORT: int = 587
    MAIL_USE_TLS: bool = True
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_DEFAULT_SENDER: str = "noreply@quizit.app"

    # --- Cleanup sweeps ---
    OLD_QUIZ_DAYS: int = 90
    INACTIVE_QUIZ_MAX_RESPONSES: int = 5

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

# Load settings
settings = Settings()

# Production readiness checks
if settings.FLASK_ENV == "production":
    if not settings.SECRET_KEY or settings.SECRET_KEY == "change-this-to-a-very-secret-key-in-production":
        raise ValueError("CRITICAL: SECRET_KEY is not set for production.")
    if settings.DEBUG:
        raise ValueError("CRITICAL: DEBUG mode must be disabled in production.")
