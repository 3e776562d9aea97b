# config.py - environment driven settings for the auth service
import os

from dotenv import load_dotenv

load_dotenv()


def _env_list(name, default):
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class AuthConfig:
    # Session tokens
    SECRET_KEY = os.environ.get("AUTH_SECRET_KEY")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

    # Password reset
    RESET_TOKEN_EXPIRE_MINUTES = 60
    RESET_TOKEN_BYTES = 32

    # Hashing cost (PBKDF2 iterations), the main latency knob
    PASSWORD_HASH_ROUNDS = int(os.environ.get("PASSWORD_HASH_ROUNDS", 29000))
    MIN_PASSWORD_HASH_ROUNDS = 10000

    # Storage
    DATABASE_URL = os.environ.get("DATABASE_URL") or "sqlite:///./db/auth.db"

    # Admin listing
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    CORS_ORIGINS = _env_list(
        "CORS_ORIGINS", ["http://localhost:5173", "http://localhost:3000"]
    )

    # Optional bootstrap admin, created on startup when email + password are set
    ADMIN_EMAIL = os.environ.get("AUTH_ADMIN_EMAIL")
    ADMIN_USERNAME = os.environ.get("AUTH_ADMIN_USERNAME", "adminuser")
    ADMIN_PASSWORD = os.environ.get("AUTH_ADMIN_PASSWORD")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    @classmethod
    def require_secret(cls):
        if not cls.SECRET_KEY:
            raise RuntimeError(
                "AUTH_SECRET_KEY is not set. Please configure it in the environment."
            )
        return cls.SECRET_KEY
