"""Flask application factory for likemint."""

from __future__ import annotations

import atexit

from flask import Flask, request

from likemint.bootstrap import BootstrapContext, bootstrap
from likemint.config import AppConfig, load_app_config
from likemint.middleware import add_cors_headers, cors_preflight, register_error_handlers
from likemint.routes import register_blueprints
from likemint.services.logging import configure_logging


def create_app(config: AppConfig | None = None, *, context: BootstrapContext | None = None) -> Flask:
    """Instantiate and configure the Flask application.

    ``context`` lets callers (tests, scripts) hand in pre-built collaborators
    instead of the network-backed ones.
    """
    cfg = config or (context.config if context else load_app_config())
    ctx = context or bootstrap(cfg)

    app = Flask("likemint")
    app.config.update(
        SECRET_KEY=cfg.flask_secret_key,
        LOG_LEVEL=cfg.log_level,
        SESSION_COOKIE_SAMESITE="Lax",
        LIKEMINT_CONFIG=cfg,
    )
    configure_logging(
        app,
        cfg.log_file_path,
        level=cfg.log_level,
        sentry_dsn=cfg.sentry_dsn or None,
        sentry_environment=cfg.sentry_environment or None,
    )
    register_error_handlers(app)
    register_blueprints(app, ctx)

    @app.before_request
    def _preflight():
        if request.method == "OPTIONS":
            return cors_preflight()
        return None

    @app.after_request
    def _cors(response):
        return add_cors_headers(response, cfg.cors_origins)

    app.extensions["likemint"] = ctx
    atexit.register(ctx.scheduler.stop)
    return app
