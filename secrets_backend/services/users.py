# secrets_backend/services/users.py
import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, SecretStr
from sqlalchemy.orm import Session as DBSession

from secrets_backend.crypto.token_vault import TokenVault, get_token_vault
from secrets_backend.models import User

logger = logging.getLogger("secrets_backend.users")


class UserRecord(BaseModel):
    """A user with the GitHub token already decrypted.

    The token is a SecretStr so it stays out of reprs, logs and JSON.
    """

    id: int
    github_id: int
    username: str
    avatar_url: Optional[str] = None
    github_token: SecretStr
    created_at: datetime

    @classmethod
    def from_row(cls, user: User, token: str) -> "UserRecord":
        return cls(
            id=user.id,
            github_id=user.github_id,
            username=user.username,
            avatar_url=user.avatar_url,
            github_token=SecretStr(token),
            created_at=user.created_at,
        )


def upsert_user(
    db: DBSession,
    github_id: int,
    username: str,
    avatar_url: Optional[str],
    access_token: str,
    vault: Optional[TokenVault] = None,
) -> UserRecord:
    """Create the user on first login, refresh profile and token on every later one."""
    vault = vault or get_token_vault()
    ciphertext = vault.encrypt(access_token)

    user = db.query(User).filter(User.github_id == github_id).first()
    if user:
        user.username = username
        user.avatar_url = avatar_url
        user.github_token_ciphertext = ciphertext
    else:
        user = User(
            github_id=github_id,
            username=username,
            avatar_url=avatar_url,
            github_token_ciphertext=ciphertext,
        )
        db.add(user)

    db.commit()
    db.refresh(user)
    logger.info("Stored GitHub user id=%s login=%s", user.id, user.username)
    return UserRecord.from_row(user, access_token)


def get_user_by_id(
    db: DBSession,
    user_id: int,
    vault: Optional[TokenVault] = None,
) -> Optional[UserRecord]:
    user = db.get(User, user_id)
    if user is None:
        return None
    vault = vault or get_token_vault()
    return UserRecord.from_row(user, vault.decrypt(user.github_token_ciphertext))
