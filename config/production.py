import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gym_attendance"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

MULTI_SESSION_DEFAULT = bool(int(os.getenv("MULTI_SESSION_DEFAULT", "0")))

NOTIFY_EMAIL_URL = os.getenv("NOTIFY_EMAIL_URL", "")
NOTIFY_SMS_URL = os.getenv("NOTIFY_SMS_URL", "")
NOTIFY_API_KEY = os.getenv("NOTIFY_API_KEY", "")
NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", "10"))
