from secrets_backend.models.user import User
from secrets_backend.models.session import Session

__all__ = ["User", "Session"]
