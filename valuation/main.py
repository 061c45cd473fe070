import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from valuation.api.v1.router import v1_router
from valuation.core.config import get_settings
from valuation.core.logging import configure_logging
from valuation.core.middleware import RequestIdMiddleware

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    # Stored attachments are served from the local upload directory
    if settings.upload_public_base_url.startswith("/"):
        app.mount(
            settings.upload_public_base_url,
            StaticFiles(directory=settings.upload_dir, check_dir=False),
            name="uploads",
        )

    logger.info("app created", extra={"environment": settings.environment, "api_prefix": settings.api_prefix})
    return app


app = create_app()
