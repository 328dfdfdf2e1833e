import os

from .config import Config, db_config_from

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
DB_CONFIG = db_config_from(Config)

DEBUG = False

AUTO_INIT_DB = Config.AUTO_INIT_DB

LOG_LEVEL = Config.LOG_LEVEL
LOG_DIR = Config.LOG_DIR

PAYROLL_TAX_RATE = Config.PAYROLL_TAX_RATE
LATE_GRACE_MINUTES = Config.LATE_GRACE_MINUTES
CERTIFICATE_VERIFY_URL = Config.CERTIFICATE_VERIFY_URL
