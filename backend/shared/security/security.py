#!/usr/bin/env python3
"""
Inculab REST - Security Module
Origin policy and request admission middleware

License: CC-BY-NC-SA 4.0
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.exceptions import OriginDeniedException
from shared.startup.config import DeploymentMode

logger = logging.getLogger(__name__)

# Substrings that mark an origin as a local development host
LOCALHOST_MARKER = 'localhost'
PRIVATE_NETWORK_MARKER = '192.168'

CORS_ALLOWED_METHODS = ['GET', 'HEAD', 'PUT', 'PATCH', 'POST', 'DELETE']

# Origins Starlette's CORSMiddleware will reflect, per deployment mode
DEVELOPMENT_ORIGIN_REGEX = r".*(localhost|192\.168).*"
PRODUCTION_ORIGIN_REGEX = r".*"

# Response headers applied to every response (helmet-style defaults)
SECURITY_HEADERS: Dict[str, str] = {
    'Content-Security-Policy': "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
    'Cross-Origin-Opener-Policy': 'same-origin',
    'Cross-Origin-Resource-Policy': 'same-origin',
    'Referrer-Policy': 'no-referrer',
    'Strict-Transport-Security': 'max-age=15552000; includeSubDomains',
    'X-Content-Type-Options': 'nosniff',
    'X-DNS-Prefetch-Control': 'off',
    'X-Frame-Options': 'SAMEORIGIN',
    'X-XSS-Protection': '0',
}


@dataclass(frozen=True)
class OriginDecision:
    """Outcome of evaluating one request origin"""
    allowed: bool
    origin: Optional[str] = None
    credentials: bool = True
    listed: bool = True


class OriginPolicy:
    """
    Environment-aware origin authorization.

    Development accepts absent origins and local or private-network hosts and
    rejects everything else. Production checks the allow-list but only logs
    origins that are not on it; those requests are still allowed.
    """

    def __init__(self, environment: DeploymentMode, allowed_origins: Iterable[str] = ()):
        self.environment = environment
        self.allowed_origins: Tuple[str, ...] = tuple(allowed_origins)

    def evaluate(self, origin: Optional[str]) -> OriginDecision:
        """
        Decide whether a declared origin may receive cross-origin responses.

        Args:
            origin: Value of the Origin header, None when the request has none

        Returns:
            OriginDecision with credentials always enabled

        Raises:
            OriginDeniedException: In development, for non-local origins
        """
        if not origin:
            return OriginDecision(allowed=True, origin=None)

        if self.environment is DeploymentMode.PRODUCTION:
            listed = origin in self.allowed_origins
            if not listed:
                # Permissive for now: flagged but not enforced
                logger.warning(f"CORS blocked origin: {origin}")
            return OriginDecision(allowed=True, origin=origin, listed=listed)

        if LOCALHOST_MARKER in origin or PRIVATE_NETWORK_MARKER in origin:
            return OriginDecision(allowed=True, origin=origin)

        raise OriginDeniedException(origin)

    def is_origin_allowed(self, origin: Optional[str]) -> bool:
        try:
            return self.evaluate(origin).allowed
        except OriginDeniedException:
            return False

    @property
    def cors_origin_regex(self) -> str:
        """Regex of origins that receive CORS headers once admitted"""
        if self.environment is DeploymentMode.PRODUCTION:
            return PRODUCTION_ORIGIN_REGEX
        return DEVELOPMENT_ORIGIN_REGEX


class OriginPolicyMiddleware(BaseHTTPMiddleware):
    """
    Request admission gate: rejects denied origins with 403 before any
    other middleware or route runs. CORS headers are left to CORSMiddleware.
    """

    def __init__(self, app, policy: OriginPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get('origin')

        try:
            decision = self.policy.evaluate(origin)
        except OriginDeniedException as e:
            client_host = request.client.host if request.client else "unknown"
            logger.warning(f"Rejected origin {e.origin} for {request.method} {request.url.path} from {client_host}")
            return JSONResponse(
                status_code=403,
                content={'error': 'Forbidden', 'message': str(e)}
            )

        request.state.origin_decision = decision
        return await call_next(request)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared body exceeds the configured limit"""

    def __init__(self, app, max_body_bytes: int):
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get('content-length')
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={'error': 'Bad Request', 'message': 'Invalid Content-Length header'}
                )
            if declared > self.max_body_bytes:
                logger.warning(f"Request body too large for {request.url.path}: {declared} bytes")
                return JSONResponse(
                    status_code=413,
                    content={
                        'error': 'Payload Too Large',
                        'message': f"Request body exceeds {self.max_body_bytes} bytes"
                    }
                )
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every response"""

    def __init__(self, app, headers: Optional[Dict[str, str]] = None):
        super().__init__(app)
        self.headers = headers if headers is not None else SECURITY_HEADERS

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            if name not in response.headers:
                response.headers[name] = value
        return response
