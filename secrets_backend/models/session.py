# secrets_backend/models/session.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from secrets_backend.core.db import Base
from secrets_backend.models.user import utcnow


class Session(Base):
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)               # 32 random bytes, hex
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)           # created_at + 7 days, never extended

    user = relationship("User", backref="sessions")
