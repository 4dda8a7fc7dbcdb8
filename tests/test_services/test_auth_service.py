from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from src.domain.errors import AuthenticationError, ConflictError, ValidationError
from src.domain.models.session import Session
from src.domain.repositories import USERS
from src.services.auth_service import hash_password, verify_password
from src.services.auth_state import AuthStateStream


def test_password_hashing():
    password_hash = hash_password("correct-horse")
    assert password_hash != "correct-horse"
    assert verify_password("correct-horse", password_hash)
    assert not verify_password("wrong-horse", password_hash)
    assert not verify_password("anything", "")


class TestSignUpAndSignIn:
    """Tests for e-mail and password accounts."""

    def test_sign_up_creates_user_and_session(self, identity, gateway):
        session = identity.sign_up(" Ada@Example.com ", "correct-horse", "Ada")

        assert session.email == "ada@example.com"
        assert session.display_name == "Ada"
        stored = gateway.raw(USERS, session.user_id)
        assert stored["password_hash"] != "correct-horse"
        assert identity.stream.current == session

    def test_duplicate_email(self, identity):
        identity.sign_up("ada@example.com", "correct-horse")
        with pytest.raises(ConflictError):
            identity.sign_up("ADA@example.com", "another-horse")

    @pytest.mark.parametrize("email,password", [
        ("not-an-email", "correct-horse"),
        ("ada@example.com", "short"),
    ])
    def test_invalid_sign_up(self, identity, gateway, email, password):
        with pytest.raises(ValidationError):
            identity.sign_up(email, password)
        assert gateway.ids(USERS) == set()

    def test_sign_in(self, identity, gateway):
        created = identity.sign_up("ada@example.com", "correct-horse")
        session = identity.sign_in("ada@example.com", "correct-horse")

        assert session.user_id == created.user_id
        assert gateway.raw(USERS, session.user_id)["last_login"] is not None

    @pytest.mark.parametrize("email,password", [
        ("ada@example.com", "wrong-horse"),
        ("nobody@example.com", "correct-horse"),
    ])
    def test_sign_in_rejected(self, identity, email, password):
        identity.sign_up("ada@example.com", "correct-horse")
        with pytest.raises(AuthenticationError):
            identity.sign_in(email, password)

    def test_disabled_account(self, identity, gateway):
        session = identity.sign_up("ada@example.com", "correct-horse")
        gateway.update(USERS, session.user_id, {"is_active": False})
        with pytest.raises(AuthenticationError):
            identity.sign_in("ada@example.com", "correct-horse")

    def test_sign_out_publishes_signed_out(self, identity):
        session = identity.sign_up("ada@example.com", "correct-horse")
        identity.sign_out(session)
        assert identity.stream.resolved
        assert identity.stream.current is None


class TestProviderSignIn:
    PROFILE = {"sub": "google-123", "email": "ada@example.com", "name": "Ada"}

    def test_creates_provider_account(self, identity, gateway):
        session = identity.sign_in_with_provider("google", self.PROFILE)

        stored = gateway.raw(USERS, session.user_id)
        assert stored["providers"] == {"google": "google-123"}
        assert stored["password_hash"] == ""
        assert session.display_name == "Ada"

    def test_same_subject_returns_same_account(self, identity, gateway):
        first = identity.sign_in_with_provider("google", self.PROFILE)
        second = identity.sign_in_with_provider("google", self.PROFILE)
        assert first.user_id == second.user_id
        assert len(gateway.ids(USERS)) == 1

    def test_links_existing_email_account(self, identity, gateway):
        created = identity.sign_up("ada@example.com", "correct-horse")
        session = identity.sign_in_with_provider("google", self.PROFILE)

        assert session.user_id == created.user_id
        assert gateway.raw(USERS, created.user_id)["providers"]["google"] == "google-123"

    def test_profile_without_email(self, identity):
        with pytest.raises(AuthenticationError):
            identity.sign_in_with_provider("google", {"sub": "google-123"})


class TestPasswordReset:
    def test_reset_flow(self, identity, gateway, reset_mailer):
        session = identity.sign_up("ada@example.com", "correct-horse")

        identity.send_password_reset("ada@example.com")

        reset_mailer.assert_called_once()
        to_email, token = reset_mailer.call_args[0]
        assert to_email == "ada@example.com"
        assert gateway.raw(USERS, session.user_id)["reset_token"] == token

        identity.reset_password(token, "battery-staple")

        assert identity.sign_in("ada@example.com", "battery-staple").user_id == session.user_id
        assert gateway.raw(USERS, session.user_id)["reset_token"] is None
        with pytest.raises(AuthenticationError):
            identity.reset_password(token, "another-staple")

    def test_unknown_email_is_silent(self, identity, reset_mailer):
        identity.send_password_reset("nobody@example.com")
        reset_mailer.assert_not_called()

    def test_expired_token(self, identity, gateway, reset_mailer):
        session = identity.sign_up("ada@example.com", "correct-horse")
        identity.send_password_reset("ada@example.com")
        token = reset_mailer.call_args[0][1]
        gateway.update(USERS, session.user_id, {
            "reset_token_expires": datetime.now(timezone.utc) - timedelta(minutes=1),
        })

        with pytest.raises(AuthenticationError):
            identity.reset_password(token, "battery-staple")

    def test_short_new_password(self, identity):
        with pytest.raises(ValidationError):
            identity.reset_password("whatever-token", "short")


class TestAuthStateStream:
    """Tests for the auth state subscription."""

    def test_unresolved_stream_delivers_nothing_on_subscribe(self):
        stream = AuthStateStream()
        listener = MagicMock()
        stream.subscribe(listener)

        listener.assert_not_called()
        assert stream.resolved is False

    def test_publish_reaches_subscribers(self):
        stream = AuthStateStream()
        listener = MagicMock()
        stream.subscribe(listener)
        session = Session(user_id="u1", email="ada@example.com")

        stream.publish(session)
        stream.publish(None)

        assert [c.args[0] for c in listener.call_args_list] == [session, None]

    def test_late_subscriber_gets_current_state(self):
        stream = AuthStateStream()
        stream.publish(None)
        listener = MagicMock()

        stream.subscribe(listener)

        listener.assert_called_once_with(None)

    def test_unsubscribe(self):
        stream = AuthStateStream()
        listener = MagicMock()
        unsubscribe = stream.subscribe(listener)
        unsubscribe()
        unsubscribe()

        stream.publish(None)

        listener.assert_not_called()
        assert stream.listener_count() == 0

    def test_failing_listener_does_not_block_others(self):
        stream = AuthStateStream()
        stream.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        healthy = MagicMock()
        stream.subscribe(healthy)

        stream.publish(None)

        healthy.assert_called_once_with(None)
