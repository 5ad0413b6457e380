"""
Inculab REST - Startup Configuration Module

Handles all configuration loading and setup during server startup.
The configuration is built once into an immutable ServerConfig and passed
explicitly to the origin policy, the application factory and the startup
orchestrator.

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple
from pathlib import Path
from dotenv import load_dotenv

from shared.exceptions import ConfigurationException

logger = logging.getLogger(__name__)


def get_absolute_path(relative_path: str) -> Path:
    """
    Convert a relative path to an absolute path based on backend directory.
    This ensures consistent file operations regardless of where script is called from.
    """
    backend_dir = Path(__file__).parent.parent.parent.absolute()
    return (backend_dir / relative_path).resolve()


DEFAULT_PORT = 4014
DEFAULT_HOST = '0.0.0.0'
DEFAULT_VERSION = '1.0.0'
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024  # 10mb JSON bodies
DEFAULT_DATABASE_URL = f"sqlite:///{get_absolute_path('server_files/inculab.db')}"
DEFAULT_ADMIN_EMAIL = 'admin@inculab.local'

# Known frontend/operator origins for production deployments
DEFAULT_ALLOWED_ORIGINS: Tuple[str, ...] = (
    'https://lighthearted-ilama-a7bfbc.netlify.app',
    'http://localhost:3000',
    'http://localhost:7011',
)


class DeploymentMode(str, Enum):
    DEVELOPMENT = 'development'
    PRODUCTION = 'production'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'DeploymentMode':
        """
        Parse a deployment mode string. Only "production" selects production;
        unset or any other value runs the development branch.
        """
        if value is None or not value.strip():
            return cls.DEVELOPMENT
        normalized = value.strip().lower()
        if normalized == cls.PRODUCTION.value:
            return cls.PRODUCTION
        if normalized != cls.DEVELOPMENT.value:
            logger.warning(f"Unknown deployment mode '{value}', running as development")
        return cls.DEVELOPMENT


@dataclass(frozen=True)
class ServerConfig:
    """
    Process-wide server configuration.

    Constructed once at startup and never mutated afterwards.
    """
    environment: DeploymentMode = DeploymentMode.DEVELOPMENT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    database_url: str = DEFAULT_DATABASE_URL
    allowed_origins: Tuple[str, ...] = field(default=DEFAULT_ALLOWED_ORIGINS)
    admin_email: str = DEFAULT_ADMIN_EMAIL
    admin_password: Optional[str] = None
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    version: str = DEFAULT_VERSION

    @property
    def is_production(self) -> bool:
        return self.environment is DeploymentMode.PRODUCTION


def parse_port(value: Optional[str]) -> int:
    """
    Parse the listener port, falling back to the default when unset.

    Raises:
        ConfigurationException: If the port is not a number in 1-65535
    """
    if value is None or not value.strip():
        return DEFAULT_PORT
    try:
        port = int(value)
    except ValueError:
        raise ConfigurationException(f"Invalid PORT '{value}', not a number")
    if not 1 <= port <= 65535:
        raise ConfigurationException(f"Invalid PORT {port}, must be 1-65535")
    return port

def parse_positive_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationException(f"Invalid {name} '{value}', not a number")
    if parsed <= 0:
        raise ConfigurationException(f"Invalid {name} {parsed}, must be positive")
    return parsed

def setup_cors_origins(cors_origins_env: Optional[str]) -> Tuple[str, ...]:
    """
    Get the production allow-list of origins.

    Args:
        cors_origins_env: Comma-separated origins from the environment, if any

    Returns:
        Tuple of allowed origins
    """
    if cors_origins_env and cors_origins_env.strip():
        origins = [origin.strip() for origin in cors_origins_env.split(',') if origin.strip()]
        return tuple(origins)
    return DEFAULT_ALLOWED_ORIGINS

def load_environment_variables(environ: Optional[Dict[str, str]] = None) -> ServerConfig:
    """
    Build the server configuration from environment variables.

    Args:
        environ: Mapping to read from; defaults to os.environ after loading .env

    Returns:
        Immutable ServerConfig
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    return ServerConfig(
        environment=DeploymentMode.parse(environ.get('INCULAB_ENV')),
        host=environ.get('HOST') or DEFAULT_HOST,
        port=parse_port(environ.get('PORT')),
        log_level=environ.get('LOG_LEVEL') or 'INFO',
        log_file=environ.get('LOG_FILE') or None,
        database_url=environ.get('DATABASE_URL') or DEFAULT_DATABASE_URL,
        allowed_origins=setup_cors_origins(environ.get('CORS_ORIGINS')),
        admin_email=environ.get('ADMIN_EMAIL') or DEFAULT_ADMIN_EMAIL,
        admin_password=environ.get('ADMIN_PASSWORD') or None,
        max_body_bytes=parse_positive_int(
            'MAX_BODY_BYTES', environ.get('MAX_BODY_BYTES'), DEFAULT_MAX_BODY_BYTES
        ),
    )

def configure_logging(log_level: str, log_file: Optional[str] = None) -> bool:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (INFO, DEBUG, etc.)
        log_file: Optional path to a log file

    Returns:
        True if successful, False otherwise
    """
    try:
        log_level_obj = getattr(logging, log_level.upper(), logging.INFO)

        handlers = [logging.StreamHandler()]
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))

        logging.basicConfig(
            level=log_level_obj,
            format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            handlers=handlers,
        )
        return True
    except OSError as e:
        print(f"Failed to configure logging: {e}")
        return False

def get_server_config() -> ServerConfig:
    """
    Get complete server configuration and configure logging from it.

    Returns:
        Complete server configuration

    Raises:
        ConfigurationException: If any environment value is invalid
    """
    config = load_environment_variables()

    if not configure_logging(config.log_level, config.log_file):
        print("Warning: Failed to configure logging")

    return config
