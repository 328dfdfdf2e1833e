import os

from .config import Config, db_config_from

SECRET_KEY = Config.SECRET_KEY
DB_CONFIG = db_config_from(Config)

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_DIR = Config.LOG_DIR

PAYROLL_TAX_RATE = Config.PAYROLL_TAX_RATE
LATE_GRACE_MINUTES = Config.LATE_GRACE_MINUTES
CERTIFICATE_VERIFY_URL = Config.CERTIFICATE_VERIFY_URL or "http://localhost:5000/api/certificates/verify"
