from fastapi import FastAPI

from quote_portal.api import admin_quotes, analytics, health, public_quotes
from quote_portal.core.config import get_settings
from quote_portal.core.errors import install_error_handlers
from quote_portal.core.logging_config import setup_logging
from quote_portal.core.throttle import build_analytics_throttler


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    app = FastAPI(title="Quote Portal", version="0.1.0")
    install_error_handlers(app)
    app.state.analytics_throttler = build_analytics_throttler()

    # Routers
    app.include_router(health.router, tags=["health"])
    app.include_router(admin_quotes.router, prefix="/admin/quotes", tags=["admin"])
    app.include_router(analytics.admin_router, tags=["analytics"])
    app.include_router(analytics.public_router, tags=["analytics"])
    app.include_router(public_quotes.router, tags=["public"])

    return app


app = create_app()
