# secrets_backend/services/sessions.py
"""Opaque login sessions with a fixed lifetime.

A session is ``Active`` until it is revoked (logout) or its ``expires_at``
passes. Expired rows are removed the next time they are validated; nothing
sweeps them in the background. Every validation reads the database, so a
logout on one device is seen by the next request on any other.

Security Note:
    Only a short prefix of a session id is ever logged.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from secrets_backend.crypto.token_vault import TokenVault, get_token_vault
from secrets_backend.models import Session, User
from secrets_backend.models.user import utcnow
from secrets_backend.services.users import UserRecord

logger = logging.getLogger("secrets_backend.sessions")

SESSION_DURATION = timedelta(days=7)
SESSION_ID_BYTES = 32  # 256 bits


@dataclass(frozen=True)
class AuthenticatedSession:
    user: UserRecord
    session: Session


def _short(session_id: str) -> str:
    return f"{session_id[:6]}..."


def create_session(db: DBSession, user_id: int) -> Session:
    """Issue a new session for ``user_id`` expiring in 7 days."""
    now = utcnow()
    session = Session(
        id=secrets.token_hex(SESSION_ID_BYTES),
        user_id=user_id,
        created_at=now,
        expires_at=now + SESSION_DURATION,
    )
    db.add(session)
    db.commit()
    logger.info("Created session %s for user_id=%s", _short(session.id), user_id)
    return session


def validate_session(
    db: DBSession,
    session_id: Optional[str],
    vault: Optional[TokenVault] = None,
) -> Optional[AuthenticatedSession]:
    """Resolve a session id to its user, or None when there is no valid session.

    Unknown and expired ids are not errors. An expired row is deleted here.

    Raises:
        AuthenticationFailure, MalformedEnvelope: the stored token cannot be
            decrypted.
        ConfigurationError: ENCRYPTION_KEY is missing.
    """
    if not session_id:
        return None

    row = (
        db.query(Session, User)
        .join(User, User.id == Session.user_id)
        .filter(Session.id == session_id)
        .first()
    )
    if row is None:
        return None

    session, user = row
    if utcnow() > session.expires_at:
        logger.info("Session %s expired, removing", _short(session_id))
        destroy_session(db, session_id)
        return None

    vault = vault or get_token_vault()
    token = vault.decrypt(user.github_token_ciphertext)
    return AuthenticatedSession(user=UserRecord.from_row(user, token), session=session)


def destroy_session(db: DBSession, session_id: Optional[str]) -> None:
    """Delete a session. Unknown or already deleted ids are fine."""
    if not session_id:
        return
    deleted = db.query(Session).filter(Session.id == session_id).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("Destroyed session %s", _short(session_id))
