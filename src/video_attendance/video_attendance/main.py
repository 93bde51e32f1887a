from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import TrackingSettings, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .reports.controller import register as register_reports
from .tracking.controller import register as register_tracking
from .tracking.scheduler import start_session_sweep

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    # Reduce APScheduler logging - only show warnings and errors
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
        logger.info("demo seed ready")

    tracking_settings = TrackingSettings(
        inactivity_timeout_seconds=int(getattr(settings, "INACTIVITY_TIMEOUT_SECONDS")),
        late_grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES")),
        ledger_write_retries=int(getattr(settings, "LEDGER_WRITE_RETRIES")),
        session_cas_attempts=int(getattr(settings, "SESSION_CAS_ATTEMPTS")),
    )
    container = build_container(
        db_config=db_config,
        settings=tracking_settings,
        pool_size=int(getattr(settings, "DB_POOL_SIZE", 5)),
    )
    app.extensions["video_attendance"] = container

    register_tracking(app, container)
    register_attendance(app, container)
    register_reports(app, container)

    if bool(getattr(settings, "ENABLE_SESSION_SWEEP", False)):
        start_session_sweep(container.session_sweeper, interval_seconds=int(getattr(settings, "SWEEP_INTERVAL_SECONDS")))

    return app
