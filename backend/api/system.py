#!/usr/bin/env python3
"""
Root endpoint
Identifies the API and its version
"""

from fastapi import APIRouter
from pydantic import BaseModel

from shared.startup.config import ServerConfig

class RootResponse(BaseModel):
    message: str
    version: str

def create_system_router(config: ServerConfig):
    """
    Create router for the root endpoint

    Args:
        config: Server configuration
    """
    router = APIRouter()

    @router.get("/", response_model=RootResponse)
    async def root():
        return RootResponse(message='API Server Running', version=config.version)

    return router
