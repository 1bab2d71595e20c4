import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")


def _flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{(BASE_DIR / 'mentorhub.db').as_posix()}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 5 * 1024 * 1024))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")

    CACHE_ENABLED = _flag("CACHE_ENABLED", True)
    AT_RISK_THRESHOLD = float(os.environ.get("AT_RISK_THRESHOLD", 85))
    DEFAULT_MENTOR_PASSWORD = os.environ.get("DEFAULT_MENTOR_PASSWORD", "1234567890")
    GROUP_MESSAGE_RETENTION_DAYS = int(os.environ.get("GROUP_MESSAGE_RETENTION_DAYS", 30))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CACHE_ENABLED = False
    LOG_FILE = None
