# secrets_backend/models/user.py
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Text
from secrets_backend.core.db import Base


def utcnow() -> datetime:
    # naive UTC, so values compare equal after a round trip through SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    github_id = Column(Integer, unique=True, index=True, nullable=False)
    username = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)

    # "nonce:tag:ciphertext" from TokenVault.encrypt; the plaintext never persists
    github_token_ciphertext = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
