"""
Main FastAPI application for the registration producer.
Opens the broker channel for the lifetime of the app and mounts the routes.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import INTERNAL_ERROR_MESSAGE, health_router, router
from libs.config import Settings, get_settings
from libs.exceptions import ValidationError
from libs.logging_utils import setup_logging
from libs.rabbit import UserPublisher, declare_registration_queue, open_channel

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, publisher: Optional[UserPublisher] = None) -> FastAPI:
    """
    Build the registration API.

    Args:
        settings: Service settings (defaults to the environment)
        publisher: Pre-built publisher; when given, no broker connection is opened

    Returns:
        FastAPI: The configured application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.publisher is not None:
            yield
            return
        # A connect/declare failure aborts startup and the server exits non-zero
        async with open_channel(settings.rabbitmq_url) as channel:
            await declare_registration_queue(channel, settings.registration_queue)
            app.state.publisher = UserPublisher(channel, settings.registration_queue)
            logger.info("Registration API connected to queue %s", settings.registration_queue)
            try:
                yield
            finally:
                app.state.publisher = None

    app = FastAPI(
        title="User Registration API",
        description="Validates user registrations and queues them for processing",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.publisher = publisher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time to response headers."""
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        """Render gate failures as 400 with the first violation as message."""
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": exc.message})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": INTERNAL_ERROR_MESSAGE},
        )

    app.include_router(health_router)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Run the API with uvicorn using host/port from settings."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
