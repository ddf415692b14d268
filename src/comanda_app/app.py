"""
Factory for the back-office Flask API.

Authentication is a Supabase access token (JWT) on every request; the
browser talks to ``/api/*`` only.
"""

from __future__ import annotations

import atexit
import logging
import os

import click
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from comanda_shared.config import AppConfig, load_config, validate_required_env_vars
from comanda_shared.db import init_db, init_engine
from comanda_shared.error_handlers import register_error_handlers
from comanda_shared.jwt_middleware import init_jwt_middleware
from comanda_shared.logging_config import configure_logging
from comanda_shared.models import Base
from comanda_shared.serializers import success_response
from comanda_shared.services.notification_service import NotificationService
from comanda_shared.supabase.client import create_supabase_client
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.supabase.realtime import (
    ChangeSubscriptionRegistry,
    InMemoryChannelTransport,
    RedisChannelTransport,
)
from comanda_shared.supabase.storage import SupabaseStorage

from comanda_app.extensions import EXTENSION_KEY, Services

logger = logging.getLogger(__name__)

DEFAULT_DEV_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:8080",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:8080",
]


def _build_registry(config: AppConfig) -> ChangeSubscriptionRegistry:
    if config.realtime_enabled:
        transport = RedisChannelTransport.from_url(config.redis_url)
    else:
        logger.info("Realtime disabled; change events stay inside this process")
        transport = InMemoryChannelTransport()
    return ChangeSubscriptionRegistry(transport, prefix=config.realtime_channel_prefix)


def create_app(
    config: AppConfig | None = None,
    gateway: SupabaseGateway | None = None,
    registry: ChangeSubscriptionRegistry | None = None,
    storage: SupabaseStorage | None = None,
) -> Flask:
    """
    Build the Flask application that serves the back office.

    Tests pass their own config, gateway and registry; in production they
    are built from the environment.
    """
    if config is None:
        validate_required_env_vars(skip_in_debug=True)
        config = load_config("chefcomanda-api")

    configure_logging(config.app_name, config.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["SUPABASE_JWT_SECRET"] = config.supabase_jwt_secret
    app.config["APP_NAME"] = config.app_name
    app.config["DEBUG_MODE"] = config.debug_mode
    app.config["JSON_SORT_KEYS"] = False

    if gateway is None:
        gateway = SupabaseGateway(create_supabase_client(config))
    if registry is None:
        registry = _build_registry(config)
    if storage is None and config.supabase_url:
        storage = SupabaseStorage(gateway.client, config.supabase_url, config.storage_bucket_products)

    gateway.set_publisher(registry)
    registry.start()
    notifications = NotificationService(gateway, registry)
    notifications.start()

    services = Services(
        config=config,
        gateway=gateway,
        registry=registry,
        notifications=notifications,
        storage=storage,
    )
    app.extensions[EXTENSION_KEY] = services
    atexit.register(services.shutdown)

    init_jwt_middleware(app)
    register_error_handlers(app)

    # ProxyFix: Trust X-Forwarded-* headers from reverse proxy
    num_proxies = int(os.getenv("NUM_PROXIES", "0"))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=num_proxies,
            x_proto=num_proxies,
            x_host=num_proxies,
            x_port=num_proxies,
        )

    from comanda_app.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    allowed_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]
    if config.debug_mode or not allowed_origins:
        allowed_origins = DEFAULT_DEV_ORIGINS
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins, "supports_credentials": True}},
        supports_credentials=True,
    )

    @app.get("/")
    def index():
        return jsonify(success_response({"app": config.app_name}))

    @app.cli.command("init-db")
    @click.option("--database-url", default=None, help="Overrides DATABASE_URL")
    def init_db_command(database_url):
        """Create the schema on a local PostgreSQL (or SQLite) database."""
        init_engine(config, database_url)
        tables = init_db(Base.metadata)
        click.echo(f"Schema ready: {', '.join(tables)}")

    logger.info(
        "Back-office API ready",
        extra={"app": config.app_name, "realtime": config.realtime_enabled},
    )
    return app
