import os


def _to_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on", "y"}


APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
IS_PRODUCTION = APP_ENV == "production"

# Writable data directory (e.g. a mounted volume); falls back to the working dir
DATA_DIR = os.getenv("KAKEIBO_DATA_DIR", ".")
DATABASE_URL = os.getenv(
    "DATABASE_URL", "sqlite:///" + os.path.join(DATA_DIR, "kakeibo.db")
)

SESSION_SECRET = os.getenv(
    "SESSION_SECRET", "kakeibo-secure-session-key-change-in-production"
)
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "kakeibo_session")
SESSION_COOKIE_SECURE = _to_bool(os.getenv("SESSION_COOKIE_SECURE"), default=IS_PRODUCTION)
SESSION_COOKIE_SAMESITE = os.getenv(
    "SESSION_COOKIE_SAMESITE", "lax" if IS_PRODUCTION else "strict"
)
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", "30"))

DEFAULT_USERNAME = os.getenv("DEFAULT_USERNAME", "admin")
DEFAULT_PASSWORD = os.getenv("DEFAULT_PASSWORD", "r246")

RATE_LIMIT_WINDOW_MINUTES = int(os.getenv("RATE_LIMIT_WINDOW_MINUTES", "15"))
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "100"))
LOGIN_RATE_LIMIT_MAX = int(os.getenv("LOGIN_RATE_LIMIT_MAX", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
