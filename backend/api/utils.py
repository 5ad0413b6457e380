#!/usr/bin/env python3
"""
Shared API utilities
Global error handling for requests that were already admitted
"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.startup.config import ServerConfig

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = 'Something went wrong'

def build_error_content(exc: Exception, config: ServerConfig) -> dict:
    """
    Build the 500 response body; production never exposes the error message.
    """
    return {
        'error': 'Internal Server Error',
        'message': GENERIC_ERROR_MESSAGE if config.is_production else str(exc)
    }

def error_response(request: Request, exc: Exception, config: ServerConfig) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=build_error_content(exc, config))


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Turns unhandled route errors into the 500 response.

    Installed innermost, so CORS and security headers still wrap the response.
    """

    def __init__(self, app, config: ServerConfig):
        super().__init__(app)
        self.config = config

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc, self.config)


def register_exception_handlers(app: FastAPI, config: ServerConfig) -> None:
    """
    Register the global handlers for unhandled route and middleware errors

    Must run before the other middleware is added so the error middleware
    ends up innermost. The exception handler remains for errors raised by
    the outer middleware themselves.

    Args:
        app: FastAPI application instance
        config: Server configuration
    """
    app.add_middleware(ErrorHandlingMiddleware, config=config)

    @app.exception_handler(Exception)
    async def global_error_handler(request: Request, exc: Exception):
        return error_response(request, exc, config)
