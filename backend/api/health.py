#!/usr/bin/env python3
"""
Health check endpoint
Provides service health status for load balancers and uptime checks
"""

from fastapi import APIRouter
from pydantic import BaseModel
from datetime import datetime, timezone
import logging

from shared.startup.config import ServerConfig

logger = logging.getLogger(__name__)

# Pydantic models for response validation
class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str
    environment: str

def create_health_router(config: ServerConfig):
    """
    Create and configure health check router

    Args:
        config: Server configuration
    """
    router = APIRouter()

    @router.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Health check endpoint
        Always answers once the listener is up, independent of startup history
        """
        return HealthResponse(
            status='OK',
            message='API server is up and running',
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=config.environment.value
        )

    return router
