import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gym_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo gyms/members on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Gyms without their own setting follow this (0 = one visit per day)
MULTI_SESSION_DEFAULT = bool(int(os.getenv("MULTI_SESSION_DEFAULT", "0")))

# Credential delivery; a channel stays off while its URL is empty
NOTIFY_EMAIL_URL = os.getenv("NOTIFY_EMAIL_URL", "")
NOTIFY_SMS_URL = os.getenv("NOTIFY_SMS_URL", "")
NOTIFY_API_KEY = os.getenv("NOTIFY_API_KEY", "")
NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", "10"))
