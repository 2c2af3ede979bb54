import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as carrental.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "carrental.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Create tables at startup instead of running migrations (local/dev only)
    CREATE_TABLES = os.getenv("CREATE_TABLES", "false").lower() == "true"

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "carrental_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = 30 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Double-submit CSRF check on authenticated state-changing requests
    CSRF_ENABLED = True

    # Passwords
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LEN = int(os.getenv("PASSWORD_MIN_LEN", "8"))

    # Listing limits
    MAX_PAGE_SIZE = 200

    # Upper bounds on listing and booking input (amounts in the smallest currency unit)
    MAX_DAILY_RATE = int(os.getenv("MAX_DAILY_RATE", "10000000"))
    MAX_SEATS = int(os.getenv("MAX_SEATS", "60"))
    MAX_RENTAL_DAYS = int(os.getenv("MAX_RENTAL_DAYS", "365"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Basic app settings
    DEBUG = False
