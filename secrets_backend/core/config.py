# secrets_backend/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()  # load from .env


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Values are read when the object is built, so tests can construct their own."""

    def __init__(self):
        self.GITHUB_CLIENT_ID: str = os.getenv("GITHUB_CLIENT_ID", "")
        self.GITHUB_CLIENT_SECRET: str = os.getenv("GITHUB_CLIENT_SECRET", "")
        self.GITHUB_OAUTH_CALLBACK_URL: str = os.getenv("GITHUB_OAUTH_CALLBACK_URL", "")
        self.GITHUB_OAUTH_SCOPES: str = os.getenv("GITHUB_OAUTH_SCOPES", "repo")

        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./secrets_dashboard.db")

        # 64 hex chars (AES-256). Never defaulted.
        self.ENCRYPTION_KEY: str = os.getenv("ENCRYPTION_KEY", "")

        self.SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session")
        self.SESSION_COOKIE_SECURE: bool = _env_bool("SESSION_COOKIE_SECURE", False)

        self.HOST: str = os.getenv("HOST", "127.0.0.1")
        self.PORT: int = int(os.getenv("PORT", "8000"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "/")
        self.CORS_ORIGINS: list[str] = [
            o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()
        ]


settings = Settings()
