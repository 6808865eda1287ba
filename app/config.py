# file: config.py

import os
from dotenv import load_dotenv

load_dotenv()

TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS", "serviceAccountKey.json")

# iOS keeps at most 64 pending local notifications per app
MAX_PENDING_NOTIFICATIONS = int(os.getenv("MAX_PENDING_NOTIFICATIONS", "64"))
NOTIFICATION_TIMEZONE = os.getenv("NOTIFICATION_TIMEZONE", "UTC")
DISPLAY_TIME_FALLBACK = os.getenv("DISPLAY_TIME_FALLBACK", "Expired")
SETTINGS_URL = os.getenv("SETTINGS_URL", "app-settings:")

SCHEDULER_INTERVAL_SECONDS = int(os.getenv("SCHEDULER_INTERVAL_SECONDS", "60"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if TESTING:
        return "sqlite+aiosqlite:///:memory:"
    if not DB_PASSWORD:
        raise ValueError("DB_PASSWORD environment variable is required")
    return f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
