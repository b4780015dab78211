# config.py
import os

# --- Database ---
# Production should always set DATABASE_URL in the environment
DB_NAME = os.getenv("DB_NAME", "kandu")
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", "5432"))

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"dbname={DB_NAME} user={DB_USER} password={DB_PASSWORD} host={DB_HOST} port={DB_PORT}",
)

# --- Session cookie ---
SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_please_change_me")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", "86400"))  # 1 day
HTTPS_ONLY = os.getenv("HTTPS_ONLY", "0").lower() in ("1", "true", "yes")

# --- Passwords ---
# Lower this only in tests, bcrypt cost grows exponentially
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# --- Uploads ---
UPLOAD_ROOT = os.getenv("UPLOAD_ROOT", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

# --- Client polling ---
# The app has no push channel, clients refresh badges on this interval
NOTIFICATION_POLL_SECONDS = int(os.getenv("NOTIFICATION_POLL_SECONDS", "30"))

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
