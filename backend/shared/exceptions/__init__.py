"""
Custom Exceptions for Inculab REST
Provides specific exception types for configuration, startup and request admission
"""

from typing import Optional


class InculabException(Exception):
    """Base exception for the Inculab REST backend"""
    pass

class ConfigurationException(InculabException):
    """Raised when environment configuration is missing or invalid"""
    pass

class StartupException(InculabException):
    """Exceptions raised by a step of the startup sequence"""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step

class StorageConnectionException(StartupException):
    """Raised when the storage connection cannot be established or verified"""
    pass

class SeedingException(StartupException):
    """Raised when permission or admin seeding fails"""
    pass

class ListenerException(StartupException):
    """Raised when the network listener cannot be bound or never starts accepting"""
    pass

class OriginDeniedException(InculabException):
    """Raised when a declared origin is not allowed by the origin policy"""

    def __init__(self, origin: str):
        super().__init__("Not allowed by CORS")
        self.origin = origin
