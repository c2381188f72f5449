"""Tests for the user store and the session lifecycle."""
from datetime import timedelta

import pytest

from secrets_backend.core.errors import AuthenticationFailure
from secrets_backend.models import Session, User
from secrets_backend.models.user import utcnow
from secrets_backend.services.sessions import (
    SESSION_DURATION,
    create_session,
    destroy_session,
    validate_session,
)
from secrets_backend.services.users import get_user_by_id, upsert_user


@pytest.fixture
def user(db, vault):
    return upsert_user(db, 1001, "u1", "https://avatars.example/u1", "gh_abc123", vault=vault)


class TestUsers:

    def test_token_round_trips_through_store(self, db, vault, user):
        loaded = get_user_by_id(db, user.id, vault=vault)
        assert loaded.github_token.get_secret_value() == "gh_abc123"
        assert loaded.username == "u1"

    def test_plaintext_token_not_persisted(self, db, vault, user):
        row = db.get(User, user.id)
        assert "gh_abc123" not in row.github_token_ciphertext
        assert len(row.github_token_ciphertext.split(":")) == 3

    def test_token_hidden_from_repr_and_dump(self, user):
        assert "gh_abc123" not in repr(user)
        assert "gh_abc123" not in user.model_dump_json()

    def test_upsert_updates_existing_user(self, db, vault, user):
        again = upsert_user(db, 1001, "u1-renamed", "https://avatars.example/new", "gh_rotated", vault=vault)
        assert again.id == user.id
        assert db.query(User).count() == 1
        loaded = get_user_by_id(db, user.id, vault=vault)
        assert loaded.username == "u1-renamed"
        assert loaded.avatar_url == "https://avatars.example/new"
        assert loaded.github_token.get_secret_value() == "gh_rotated"

    def test_unknown_user(self, db, vault):
        assert get_user_by_id(db, 999, vault=vault) is None


class TestCreateSession:

    def test_id_is_long_and_random(self, db, user):
        first = create_session(db, user.id)
        second = create_session(db, user.id)
        assert len(first.id) == 64
        int(first.id, 16)
        assert first.id != second.id

    def test_fixed_expiry(self, db, user):
        session = create_session(db, user.id)
        assert session.expires_at - session.created_at == SESSION_DURATION
        assert SESSION_DURATION == timedelta(days=7)


class TestValidateSession:

    def test_fresh_session_resolves_user_and_token(self, db, vault, user):
        session = create_session(db, user.id)
        result = validate_session(db, session.id, vault)
        assert result is not None
        assert result.user.id == user.id
        assert result.user.github_token.get_secret_value() == "gh_abc123"
        assert result.session.id == session.id

    def test_validation_does_not_slide_expiry(self, db, vault, user):
        session = create_session(db, user.id)
        expires_at = session.expires_at
        validate_session(db, session.id, vault)
        assert db.get(Session, session.id).expires_at == expires_at

    @pytest.mark.parametrize("session_id", [None, "", "garbage", "0" * 64])
    def test_unknown_ids_are_not_errors(self, db, vault, session_id):
        assert validate_session(db, session_id, vault) is None

    def test_expired_session_is_removed(self, db, vault, user):
        session = create_session(db, user.id)
        db.get(Session, session.id).expires_at = utcnow() - timedelta(seconds=1)
        db.commit()

        assert validate_session(db, session.id, vault) is None
        assert db.query(Session).filter(Session.id == session.id).count() == 0
        assert validate_session(db, session.id, vault) is None

    def test_undecryptable_token_is_a_hard_failure(self, db, vault, user):
        session = create_session(db, user.id)
        row = db.get(User, user.id)
        nonce, tag, ciphertext = row.github_token_ciphertext.split(":")
        row.github_token_ciphertext = ":".join((nonce, "00" * 16, ciphertext))
        db.commit()
        with pytest.raises(AuthenticationFailure):
            validate_session(db, session.id, vault)


class TestDestroySession:

    def test_destroy_then_validate(self, db, vault, user):
        session = create_session(db, user.id)
        assert validate_session(db, session.id, vault).user.id == user.id
        destroy_session(db, session.id)
        assert validate_session(db, session.id, vault) is None

    def test_destroy_is_idempotent(self, db, vault, user):
        session = create_session(db, user.id)
        destroy_session(db, session.id)
        destroy_session(db, session.id)
        destroy_session(db, "never-existed")
        destroy_session(db, None)
        assert validate_session(db, "never-existed", vault) is None

    def test_other_sessions_survive(self, db, vault, user):
        kept = create_session(db, user.id)
        dropped = create_session(db, user.id)
        destroy_session(db, dropped.id)
        assert validate_session(db, kept.id, vault) is not None
