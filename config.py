import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as episol.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "episol.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Dev convenience; production schemas come from `flask db upgrade`
    CREATE_TABLES_ON_STARTUP = os.getenv("CREATE_TABLES_ON_STARTUP", "false").lower() == "true"

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "episol_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
    CSRF_ENABLED = True

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Slot generation defaults
    DEFAULT_INTERVAL_MINUTES = int(os.getenv("DEFAULT_INTERVAL_MINUTES", "15"))
    DEFAULT_INTERVAL_CAPACITY = int(os.getenv("DEFAULT_INTERVAL_CAPACITY", "3"))

    # Total visits a new student may book before staff raise the limit
    DEFAULT_MAX_ALLOWED_PASSES = int(os.getenv("DEFAULT_MAX_ALLOWED_PASSES", "2"))

    # Missed appointments sweep
    MISSED_SWEEP_ENABLED = os.getenv("MISSED_SWEEP_ENABLED", "true").lower() == "true"
    MISSED_SWEEP_INTERVAL_MINUTES = int(os.getenv("MISSED_SWEEP_INTERVAL_MINUTES", "30"))
    MISSED_GRACE_MINUTES = int(os.getenv("MISSED_GRACE_MINUTES", "60"))
    MISSED_RELEASES_CAPACITY = os.getenv("MISSED_RELEASES_CAPACITY", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
