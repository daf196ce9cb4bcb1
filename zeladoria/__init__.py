import os
import atexit

from flask import Flask, jsonify
from flask_cors import CORS

# database imports
from zeladoria.models import db

# scheduler imports
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from zeladoria.logging_config import configure_logging, get_logger

# Configure logging
logger = configure_logging(
    log_level=os.environ.get("LOG_LEVEL", "INFO"),
    log_file=os.environ.get("LOG_FILE")
)


def init_scheduler(app):
    """Initialize the background scheduler with the daily schedule recalculation."""

    # --- Prevent scheduler duplication in multi-worker environments ---
    # Only run the scheduler on one instance
    if os.environ.get("WERKZEUG_RUN_MAIN") != "true" and not os.environ.get("IS_SCHEDULER_WORKER"):
        logger.info("Skipping scheduler startup on this worker")
        return None

    if not app.config.get("DAILY_RECALCULATION_ENABLED", True):
        logger.info("Daily schedule recalculation disabled")
        return None

    executors = {"default": ThreadPoolExecutor(1)}
    scheduler = BackgroundScheduler(executors=executors, timezone=app.config.get("LOCAL_TIMEZONE"))

    def daily_recalculation():
        from zeladoria.rocagem.scheduling.service import recalculate_all_schedules

        with app.app_context():
            try:
                summary = recalculate_all_schedules()
                logger.info("Daily schedule recalculation finished", **summary)
            except Exception as exc:
                logger.error("Daily schedule recalculation failed", error=str(exc), exc_info=True)

    scheduler.add_job(
        func=daily_recalculation,
        trigger="cron",
        hour=app.config.get("DAILY_RECALCULATION_HOUR", 1),
        minute=0,
        id="daily_schedule_recalculation",
        replace_existing=True,
    )

    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))

    logger.info("Scheduler started", hour=app.config.get("DAILY_RECALCULATION_HOUR", 1))
    return scheduler


def create_app(config_overrides=None):
    """
    Build the Flask application.

    Args:
        config_overrides: Optional dict applied on top of the environment
            config before extensions are initialised (tests pass
            SQLALCHEMY_DATABASE_URI here).
    """
    # Import config after dotenv is loaded
    from zeladoria.config import get_config
    from zeladoria.db_config import configure_database

    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)

    overrides = dict(config_overrides or {})
    configure_database(app, overrides.pop("SQLALCHEMY_DATABASE_URI", None))
    app.config.update(overrides)

    logger.info(f"Starting application in {config_class.ENV} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/api/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    db.init_app(app)

    @app.route("/health")
    def health():
        from zeladoria.recalculation_lock import recalculation_lock
        return jsonify({"status": "ok", "recalculation": recalculation_lock.get_status()}), 200

    from zeladoria.rocagem import rocagem_bp
    app.register_blueprint(rocagem_bp, url_prefix="/api")

    if not app.config.get("TESTING"):
        init_scheduler(app)

    return app
