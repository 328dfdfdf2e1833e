from __future__ import annotations

import importlib
import logging
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .audit.controller import register as register_audit
from .books.controller import register as register_books
from .certificates.controller import register as register_certificates
from .container import Container, build_container
from .database.bootstrap import DEFAULT_SCHEMA_PATH, apply_schema, list_tables
from .examinations.controller import register as register_examinations
from .grades.controller import register as register_grades
from .logging_config import setup_logging
from .payroll.controller import register as register_payroll
from .teachers.controller import register as register_teachers

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory.

    A prebuilt ``container`` skips schema bootstrap and database wiring.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), log_dir=getattr(settings, "LOG_DIR", "logs"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DEFAULT_SCHEMA_PATH)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            tax_rate=Decimal(str(getattr(settings, "PAYROLL_TAX_RATE", "0.05"))),
            grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", 5)),
            verify_url=getattr(settings, "CERTIFICATE_VERIFY_URL", None),
        )

    register_teachers(app, container)
    register_attendance(app, container)
    register_examinations(app, container)
    register_certificates(app, container)
    register_payroll(app, container)
    register_grades(app, container)
    register_books(app, container)
    register_audit(app, container)

    return app
