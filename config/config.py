import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "kmsi-dev-secret"

    # DB
    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "kmsi_school")

    # Dev helpers
    AUTO_INIT_DB = bool(int(os.environ.get("AUTO_INIT_DB", "0")))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Business settings
    PAYROLL_TAX_RATE = os.environ.get("PAYROLL_TAX_RATE", "0.05")
    LATE_GRACE_MINUTES = int(os.environ.get("LATE_GRACE_MINUTES", "5"))
    CERTIFICATE_VERIFY_URL = os.environ.get("CERTIFICATE_VERIFY_URL") or None


def db_config_from(config: type) -> dict:
    return {
        "host": config.DB_HOST,
        "port": config.DB_PORT,
        "user": config.DB_USER,
        "password": config.DB_PASSWORD,
        "database": config.DB_NAME,
    }
