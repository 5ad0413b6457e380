"""
Inculab REST - Startup Services Module
Collaborator wiring and FastAPI application assembly.

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable
from fastapi import APIRouter, FastAPI

from .config import ServerConfig
from .security import configure_middleware

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """
    External collaborators consumed by the startup sequence and the app.

    database needs async connect() and disconnect(); the seeding callables
    take no arguments; listener_factory builds an object with async start(),
    wait_closed(), stop() and a synchronous request_stop().
    """
    database: Any
    update_permissions: Callable[[], Awaitable[None]]
    create_admin_user: Callable[[], Awaitable[None]]
    listener_factory: Callable[[FastAPI, ServerConfig], Any]
    routes: APIRouter = field(default_factory=APIRouter)
    storage_routes: APIRouter = field(default_factory=APIRouter)


def get_default_collaborators(config: ServerConfig) -> Collaborators:
    """
    Build the default collaborators from configuration.

    Args:
        config: Server configuration

    Returns:
        Collaborators backed by SQLAlchemy and uvicorn
    """
    from services.system_services.database import Database
    from services.system_services.listener import create_uvicorn_listener
    from services.system_services.seeding import create_admin_user, update_permissions

    database = Database(config.database_url)
    return Collaborators(
        database=database,
        update_permissions=partial(update_permissions, database),
        create_admin_user=partial(create_admin_user, database, config.admin_email, config.admin_password),
        listener_factory=create_uvicorn_listener,
    )


def setup_application_routers(app: FastAPI, config: ServerConfig, collaborators: Collaborators) -> None:
    """
    Mount business routers and the endpoints owned by the server itself.

    Args:
        app: FastAPI application instance
        config: Server configuration
        collaborators: Provides the business and storage routers
    """
    from api.health import create_health_router
    from api.system import create_system_router

    app.include_router(collaborators.routes)
    app.include_router(collaborators.storage_routes, prefix="/storage")
    app.include_router(create_health_router(config), prefix="/api")
    app.include_router(create_system_router(config))

    logger.info("All application routers included successfully")


def create_application(config: ServerConfig, collaborators: Collaborators) -> FastAPI:
    """
    Assemble the FastAPI application: middleware, routers, error handling.

    Args:
        config: Server configuration
        collaborators: External collaborators providing routers

    Returns:
        Configured FastAPI application (not yet listening)
    """
    from api.utils import register_exception_handlers
    from ..security.security import OriginPolicy

    app = FastAPI(
        title="Inculab REST API",
        version=config.version,
        docs_url=None if config.is_production else "/docs",
        redoc_url=None
    )

    policy = OriginPolicy(config.environment, config.allowed_origins)
    app.state.config = config
    app.state.origin_policy = policy

    # Error handling first: it must sit inside the header-adding middleware
    register_exception_handlers(app, config)
    configure_middleware(app, config, policy)
    setup_application_routers(app, config, collaborators)

    logger.info("FastAPI application setup completed")
    return app
