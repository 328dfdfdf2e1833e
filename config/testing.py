import os

from .config import Config

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "kmsi_school_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

LOG_LEVEL = "WARNING"
LOG_DIR = None

PAYROLL_TAX_RATE = "0.05"
LATE_GRACE_MINUTES = 5
CERTIFICATE_VERIFY_URL = Config.CERTIFICATE_VERIFY_URL
