"""
Inculab REST - Startup Validation Module

Socket helpers used when activating the network listener.

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import socket
import logging

from shared.exceptions import ListenerException

logger = logging.getLogger(__name__)

def bind_listener_socket(host: str, port: int) -> socket.socket:
    """
    Bind and return a listening TCP socket for the server.

    Args:
        host: Interface to bind
        port: Port to bind

    Returns:
        Bound socket, ready to be handed to the HTTP server

    Raises:
        ListenerException: If the address cannot be bound
    """
    family = socket.AF_INET6 if ':' in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(2048)
    except OSError as e:
        sock.close()
        raise ListenerException(f"Could not bind {host}:{port}: {e}", step='start_listener') from e
    sock.setblocking(False)
    logger.debug(f"Bound listener socket on {host}:{port}")
    return sock
