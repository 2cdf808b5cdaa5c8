"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from levelboard.config import Settings
from levelboard.middleware.error_handler import setup_error_handlers
from levelboard.middleware.logging import setup_logging
from levelboard.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers, request ids and CORS.

    Starlette runs middleware in reverse-add order (last added = outermost),
    so CORS is added last to wrap every response, errors included.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    # The moderation dashboard calls the review endpoints cross-origin with a bearer token
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )
