"""
Application Factory

Creates and configures Flask application with all dependencies.
This factory pattern improves testability by allowing dependency injection
and configuration overrides.
"""

import logging
import os
import time
from datetime import timedelta
from typing import Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge

from dropbin.application.content_service import ContentService
from dropbin.application.dependency_container import DependencyContainer
from dropbin.application.expiration_reaper import ExpirationReaper
from dropbin.config.logging_config import configure_logging
from dropbin.config.store_config import StoreConfig
from dropbin.domain.content import EntryIdGenerator, IBlobStore, MetadataStore
from dropbin.domain.errors import ErrorCategory, create_error_response
from dropbin.infrastructure.storage_factory import StorageFactory
from dropbin.tasks.reaper_scheduler import ReaperScheduler

logger = logging.getLogger(__name__)

# Multipart framing on top of the file body itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class AppConfig:
    """Application configuration."""

    def __init__(self, store: Optional[StoreConfig] = None):
        self.flask_env = os.getenv("FLASK_ENV", "development")
        self.is_production = self.flask_env == "production"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
        self.store = store or StoreConfig.from_env()

        # Celery is only needed when it drives the reaper
        self.celery_enabled = (
            os.getenv("CELERY_ENABLED", "true").lower() == "true"
            and self.store.reaper_mode == "celery"
        )


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Application configuration, uses default if None

    Returns:
        Configured Flask application

    Raises:
        RuntimeError: If the OS entropy source is unavailable
    """
    if config is None:
        config = AppConfig()

    configure_logging(config.log_level)

    # ID generation must work before the first request is accepted
    EntryIdGenerator.ensure_entropy_available()

    # Create Flask app
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.store.max_file_bytes + MULTIPART_OVERHEAD_BYTES
    app.config["PUBLIC_BASE_URL"] = config.store.public_base_url
    app.config["RESTX_MASK_SWAGGER"] = False
    app.config["ERROR_404_HELP"] = False
    app.store_config = config.store

    # Configure CORS
    CORS(
        app,
        resources={
            r"/*": {
                "origins": config.cors_origins,
                "methods": ["GET", "POST", "DELETE", "OPTIONS"],
                "allow_headers": ["Content-Type"],
                "expose_headers": ["Content-Type", "Content-Length", "Content-Disposition"],
                "max_age": 3600,
            }
        },
    )

    # Initialize infrastructure
    _initialize_infrastructure(app, config)

    # Initialize services
    _initialize_services(app, config)

    # Register blueprints
    _register_blueprints(app)

    # Register request logging and error handlers
    _register_request_hooks(app)
    _register_error_handlers(app)

    # Register health check endpoint
    _register_health_endpoint(app)

    # Start the in-process reaper last, once everything it needs exists
    _start_reaper(app, config)

    return app


def _initialize_infrastructure(app: Flask, config: AppConfig) -> None:
    """
    Initialize infrastructure components (Redis, Celery).

    Redis is only connected when it backs the metadata store or the reaper
    runs on Celery; a failure there leaves app.redis_repository as None and
    is reported by /health.
    """
    app.redis_repository = None
    app.celery = None

    if config.store.metadata_backend == "redis":
        from dropbin.config.redis_config import get_redis_repository, init_redis

        try:
            manager = init_redis()
            app.redis_repository = get_redis_repository(config.store.redis_key_prefix)
            if manager.health_check():
                logger.info("Redis initialized successfully")
            else:
                logger.warning("Redis initialized but not answering PING")
        except Exception as e:
            logger.warning(f"Could not initialize Redis: {e}")

    if config.celery_enabled:
        from dropbin.config.celery_config import make_celery

        try:
            app.celery = make_celery(app)
            logger.info("Celery initialized successfully")
        except Exception as e:
            logger.warning(f"Could not initialize Celery: {e}")


def _initialize_services(app: Flask, config: AppConfig) -> None:
    """
    Initialize application services and attach them to the app using DependencyContainer.

    Stores, services and the reaper are registered as singletons and resolved
    via container.resolve() in API handlers and Celery tasks.
    """
    app.container = None
    app.content_service = None

    try:
        container = DependencyContainer()

        # Infrastructure adapters
        blob_store = StorageFactory.create_blob_store(config.store.blob_storage_dir)
        metadata_store = StorageFactory.create_metadata_store(
            config.store.metadata_backend, app.redis_repository
        )
        container.register_singleton(IBlobStore, blob_store)
        container.register_singleton(MetadataStore, metadata_store)

        # Application services
        content_service = ContentService(
            metadata_store,
            blob_store,
            id_generator=EntryIdGenerator(),
            max_file_bytes=config.store.max_file_bytes,
            max_paste_bytes=config.store.max_paste_bytes,
        )
        reaper = ExpirationReaper(
            metadata_store,
            blob_store,
            orphan_grace=timedelta(seconds=config.store.orphan_grace_seconds),
        )
        container.register_singleton(ContentService, content_service)
        container.register_singleton(ExpirationReaper, reaper)

        app.container = container
        app.content_service = content_service

        logger.info(
            f"Application services initialized ({len(container)} registrations, "
            f"metadata backend: {config.store.metadata_backend})"
        )

    except Exception as e:
        logger.error(f"Could not initialize services: {e}", exc_info=True)


def _register_blueprints(app: Flask) -> None:
    from dropbin.api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    logger.info("API registered at /api with Swagger UI at /api/docs")


def _register_request_hooks(app: Flask) -> None:
    """Log every request with its status and duration."""

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(
            f"{request.method} {request.path} -> {response.status_code} ({duration_ms:.1f} ms)"
        )
        return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RequestEntityTooLarge)
    def _payload_too_large(e):
        body, status = create_error_response(ErrorCategory.PAYLOAD_TOO_LARGE, str(e))
        return jsonify(body), status


def _start_reaper(app: Flask, config: AppConfig) -> None:
    app.reaper_scheduler = None

    if config.store.reaper_mode != "thread" or app.container is None:
        logger.info(f"In-process reaper not started (mode: {config.store.reaper_mode})")
        return

    scheduler = ReaperScheduler(
        app.container.resolve(ExpirationReaper),
        interval_seconds=config.store.reaper_interval_seconds,
    )
    scheduler.start()
    app.reaper_scheduler = scheduler


def _get_health_status(app: Flask) -> tuple[dict, int]:
    """
    Get health status of all system components.

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    health_status = {
        "status": "ok",
        "message": "backend ready",
        "metadata_store": "unknown",
        "blob_store": "unknown",
        "reaper": "unknown",
    }

    if app.container is None:
        health_status["status"] = "degraded"
        health_status["message"] = "services not initialized"
        return health_status, 503

    for name, interface in (("metadata_store", MetadataStore), ("blob_store", IBlobStore)):
        try:
            if app.container.resolve(interface).health_check():
                health_status[name] = "connected"
            else:
                health_status[name] = "disconnected"
                health_status["status"] = "degraded"
        except Exception as e:
            health_status[name] = f"error: {str(e)}"
            health_status["status"] = "degraded"

    mode = app.store_config.reaper_mode
    if mode == "thread":
        running = app.reaper_scheduler is not None and app.reaper_scheduler.running
        health_status["reaper"] = "running" if running else "stopped"
        if not running:
            health_status["status"] = "degraded"
    elif mode == "celery":
        health_status["reaper"] = "celery" if app.celery is not None else "unavailable"
        if app.celery is None:
            health_status["status"] = "degraded"
    else:
        health_status["reaper"] = "disabled"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


def _register_health_endpoint(app: Flask) -> None:
    @app.route("/health", methods=["GET"])
    def health():
        """
        Health check endpoint.
        Returns overall health status of the application and its dependencies.
        """
        health_status, status_code = _get_health_status(app)
        return jsonify(health_status), status_code
