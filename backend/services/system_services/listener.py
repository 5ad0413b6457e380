#!/usr/bin/env python3
"""
Network listener for Inculab REST
Runs the FastAPI application under uvicorn on a pre-bound socket

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import asyncio
import contextlib
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from shared.exceptions import ListenerException
from shared.startup.config import ServerConfig
from shared.startup.validation import bind_listener_socket

logger = logging.getLogger(__name__)

STARTUP_POLL_SECONDS = 0.05


class ManagedServer(uvicorn.Server):
    """
    uvicorn server that leaves SIGINT/SIGTERM to the startup orchestrator.

    The orchestrator sets should_exit itself and then runs teardown.
    """

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class UvicornListener:
    """
    Listener collaborator backed by uvicorn.

    start() returns only once uvicorn reports it is accepting connections.
    """

    def __init__(self, app: FastAPI, host: str, port: int, log_level: str = 'info'):
        self.host = host
        self.port = port
        self.server = ManagedServer(uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level.lower(),
            access_log=True,
        ))
        self._task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self.server.started

    async def start(self) -> None:
        """
        Bind the port and wait until the server accepts connections.

        Raises:
            ListenerException: If binding fails or the server stops while starting
        """
        if self._task is not None:
            raise ListenerException("Listener already started", step='start_listener')

        sock = bind_listener_socket(self.host, self.port)
        self._task = asyncio.create_task(self.server.serve(sockets=[sock]))

        while not self.server.started:
            if self._task.done():
                sock.close()
                error = None if self._task.cancelled() else self._task.exception()
                raise ListenerException(
                    f"Server stopped before accepting connections: {error}",
                    step='start_listener'
                ) from error
            await asyncio.sleep(STARTUP_POLL_SECONDS)

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task

    def request_stop(self) -> None:
        """Ask uvicorn to finish in-flight requests and close the socket."""
        self.server.should_exit = True

    async def stop(self) -> None:
        if self._task is None:
            return
        self.request_stop()
        await self._task
        logger.info("Listener stopped")


def create_uvicorn_listener(app: FastAPI, config: ServerConfig) -> UvicornListener:
    return UvicornListener(app, config.host, config.port, log_level=config.log_level)
