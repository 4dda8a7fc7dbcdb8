"""Authentication service: accounts kept in the store, bcrypt passwords."""
import secrets
from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Dict, Optional
import bcrypt

from src.domain.errors import AuthenticationError, ConflictError, ValidationError
from src.domain.models.db_models import User
from src.domain.models.migrations import load_many, load_user
from src.domain.models.session import Session
from src.domain.repositories import USERS, AuthStateListener, IIdentityProvider, IPersistenceGateway
from src.infrastructure.config import settings
from src.services import email_service
from src.services.auth_state import AuthStateStream
from qi_utils.logger_utils import logger


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a hash."""
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))


def generate_reset_token() -> str:
    """Generate a secure password reset token."""
    return secrets.token_urlsafe(32)


def session_for(user: User) -> Session:
    return Session(user_id=user.id, email=user.email, display_name=user.display_name)


class GatewayIdentityProvider(IIdentityProvider):
    """Identity provider storing accounts in the `users` collection."""

    def __init__(
        self,
        gateway: IPersistenceGateway,
        stream: Optional[AuthStateStream] = None,
        send_reset_email: Callable[[str, str], bool] = email_service.send_password_reset_email,
    ):
        self.gateway = gateway
        self.stream = stream or AuthStateStream()
        self._send_reset_email = send_reset_email

    # -- lookups ---------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        doc = self.gateway.get_by_id(USERS, user_id)
        return load_user(doc) if doc else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        users = load_many(self.gateway.query(USERS, [("email", "==", email.strip().lower())]), load_user)
        return users[0] if users else None

    def _get_user_by_provider(self, provider: str, subject: str) -> Optional[User]:
        users = load_many(self.gateway.query(USERS, [(f"providers.{provider}", "==", subject)]), load_user)
        return users[0] if users else None

    # -- sign up / sign in ----------------------------------------------

    def _check_password(self, password: str) -> None:
        if len(password or "") < settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters.")

    def sign_up(self, email: str, password: str, display_name: str = "") -> Session:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("Please provide a valid email address.")
        self._check_password(password)

        if self.get_user_by_email(email):
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            password_hash=hash_password(password),
            display_name=display_name.strip(),
            last_login=datetime.now(timezone.utc),
        )
        self.gateway.insert(USERS, user.to_dict())
        logger.info("Created new user", extra={"user_id": user.id, "component": "auth_service"})

        session = session_for(user)
        self.stream.publish(session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        user = self.get_user_by_email(email or "")
        if not user or not user.is_active or not verify_password(password or "", user.password_hash):
            logger.info("Sign-in rejected", extra={"component": "auth_service"})
            raise AuthenticationError("Invalid email or password.")

        self.gateway.update(USERS, user.id, {"last_login": datetime.now(timezone.utc)})
        logger.info("User authenticated", extra={"user_id": user.id, "component": "auth_service"})

        session = session_for(user)
        self.stream.publish(session)
        return session

    def sign_in_with_provider(self, provider: str, profile: Dict[str, Any]) -> Session:
        """
        Sign in with an external provider profile (OpenID userinfo).

        Matches by provider subject first, then links an existing account with
        the same e-mail, otherwise creates a provider-only account.
        """
        subject = str(profile.get("sub") or "")
        email = (profile.get("email") or "").strip().lower()
        if not subject or not email:
            raise AuthenticationError(f"{provider} did not return an account id and email.")

        user = self._get_user_by_provider(provider, subject)
        now = datetime.now(timezone.utc)
        if user is None:
            user = self.get_user_by_email(email)
            if user is not None:
                self.gateway.update(USERS, user.id, {f"providers.{provider}": subject, "last_login": now})
                logger.info("Linked provider to account", extra={"user_id": user.id, "provider": provider})
            else:
                user = User(
                    email=email,
                    display_name=profile.get("name") or "",
                    providers={provider: subject},
                    last_login=now,
                )
                self.gateway.insert(USERS, user.to_dict())
                logger.info("Created provider account", extra={"user_id": user.id, "provider": provider})
        else:
            self.gateway.update(USERS, user.id, {"last_login": now})

        if not user.is_active:
            raise AuthenticationError("This account is disabled.")

        session = session_for(user)
        self.stream.publish(session)
        return session

    def sign_out(self, session: Optional[Session]) -> None:
        if session is not None:
            logger.info("User signed out", extra={"user_id": session.user_id, "component": "auth_service"})
        self.stream.publish(None)

    def on_auth_state_change(self, listener: AuthStateListener) -> Callable[[], None]:
        return self.stream.subscribe(listener)

    # -- password reset ----------------------------------------------------

    def send_password_reset(self, email: str) -> None:
        """Unknown addresses are accepted silently so accounts cannot be enumerated."""
        user = self.get_user_by_email(email or "")
        if not user:
            logger.info("Password reset requested for unknown email", extra={"component": "auth_service"})
            return

        token = generate_reset_token()
        expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.PASSWORD_RESET_TTL_HOURS)
        self.gateway.update(USERS, user.id, {"reset_token": token, "reset_token_expires": expires_at})

        if not self._send_reset_email(user.email, token):
            logger.warning("Password reset email was not sent", extra={"user_id": user.id})
        else:
            logger.info("Password reset requested", extra={"user_id": user.id})

    def reset_password(self, token: str, new_password: str) -> None:
        self._check_password(new_password)
        users = load_many(self.gateway.query(USERS, [("reset_token", "==", token)]), load_user) if token else []
        user = users[0] if users else None
        now = datetime.now(timezone.utc)
        if not user or not user.reset_token_expires or user.reset_token_expires <= now:
            raise AuthenticationError("The password reset link is invalid or has expired.")

        self.gateway.update(USERS, user.id, {
            "password_hash": hash_password(new_password),
            "reset_token": None,
            "reset_token_expires": None,
        })
        logger.info("Password reset completed", extra={"user_id": user.id})
