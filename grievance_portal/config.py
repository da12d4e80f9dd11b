"""Runtime configuration read from environment variables."""
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# In-memory SQLite unless an operator points DATABASE_URL elsewhere
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://")

# Fix for Render/Heroku: they use postgres:// but SQLAlchemy needs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")  # "console" or "json"

# Admin "system settings" switch: closes new filings, existing cases keep moving
SUBMISSIONS_ENABLED = _env_flag("SUBMISSIONS_ENABLED", True)

# Bootstrap administrator, seeded Approved at startup when email and password are set
ADMIN_NAME = os.getenv("ADMIN_NAME", "Exam Cell Admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# AI summary collaborator
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
AI_SUMMARY_MODEL = os.getenv("AI_SUMMARY_MODEL", "claude-3-5-haiku-latest")
AI_SUMMARY_TIMEOUT = float(os.getenv("AI_SUMMARY_TIMEOUT", "20"))
