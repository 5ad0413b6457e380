"""
Inculab REST - Startup Security Module

Handles all security-related middleware initialization during server startup.

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import logging
from fastapi import FastAPI

from .config import ServerConfig

logger = logging.getLogger(__name__)

def configure_middleware(app: FastAPI, config: ServerConfig, policy) -> None:
    """
    Apply the request admission middleware stack to the application.

    Must be called once, before routers are mounted. Starlette runs the last
    added middleware first, so the resulting order, outermost first, is:
    origin admission, CORS headers, body limit, security headers.

    Args:
        app: FastAPI application instance
        config: Server configuration
        policy: OriginPolicy evaluated for each request
    """
    from fastapi.middleware.cors import CORSMiddleware
    from ..security.security import (
        CORS_ALLOWED_METHODS, BodySizeLimitMiddleware, OriginPolicyMiddleware, SecurityHeadersMiddleware
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=config.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=policy.cors_origin_regex,
        allow_credentials=True,
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=["*"],
    )
    app.add_middleware(OriginPolicyMiddleware, policy=policy)

    if config.is_production:
        logger.info(f"Origin policy: production, {len(policy.allowed_origins)} listed origins (unlisted origins are logged)")
    else:
        logger.info("Origin policy: development, localhost and 192.168.x origins only")
    logger.info(f"Request body limit: {config.max_body_bytes} bytes")
