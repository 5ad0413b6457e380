"""
Inculab REST - Server Startup Orchestrator

Runs the ordered startup sequence (storage, development seeding, listener),
aborting the process on the first failure, and tears everything down again
once the listener stops.

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import sys
import signal
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from shared.exceptions import ConfigurationException
from .config import ServerConfig, get_server_config
from .services import Collaborators, create_application, get_default_collaborators

logger = logging.getLogger(__name__)


@dataclass
class StartupStep:
    """One named, awaited unit of startup work"""
    name: str
    action: Callable[[], Awaitable[Any]]
    success_message: Optional[str] = None


@dataclass
class StartupResult:
    ok: bool
    completed: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[BaseException] = None


class ServerStartup:
    """
    Main server startup orchestrator that coordinates all initialization phases.
    """

    def __init__(self, config: ServerConfig, collaborators: Optional[Collaborators] = None,
                 exit_process: Callable[[int], Any] = sys.exit):
        self.config = config
        self.collaborators = collaborators or get_default_collaborators(config)
        self.exit_process = exit_process
        self.app = create_application(config, self.collaborators)
        self.listener = None
        self.storage_connected = False

    async def connect_storage(self) -> None:
        await self.collaborators.database.connect()
        self.storage_connected = True

    async def update_permissions(self) -> None:
        await self.collaborators.update_permissions()

    async def create_admin_user(self) -> None:
        await self.collaborators.create_admin_user()

    async def start_listener(self) -> None:
        listener = self.collaborators.listener_factory(self.app, self.config)
        await listener.start()
        self.listener = listener

    def build_steps(self) -> List[StartupStep]:
        """
        Get the ordered startup steps for the configured deployment mode.

        Returns:
            Steps in execution order; seeding is skipped in production
        """
        steps = [StartupStep('connect_storage', self.connect_storage, "✅ Storage connected")]

        if not self.config.is_production:
            steps.append(StartupStep('update_permissions', self.update_permissions))
            steps.append(StartupStep('create_admin_user', self.create_admin_user,
                                     "✅ Development setup completed"))

        base_url = f"http://localhost:{self.config.port}"
        steps.append(StartupStep(
            'start_listener', self.start_listener,
            f"🚀 Server ready at {base_url}/ (health check: {base_url}/api/health)"
        ))
        return steps

    async def run_startup_sequence(self) -> StartupResult:
        """
        Run every step in order, stopping at the first failure.

        Returns:
            StartupResult naming the completed steps and, on failure,
            the failing step and its error
        """
        logger.info(f"Starting server startup sequence ({self.config.environment.value})...")
        completed: List[str] = []

        for step in self.build_steps():
            logger.debug(f"Running startup step: {step.name}")
            try:
                await step.action()
            except Exception as e:
                return StartupResult(ok=False, completed=completed, failed_step=step.name, error=e)
            completed.append(step.name)
            if step.success_message:
                logger.info(step.success_message)

        logger.info("Server startup sequence completed successfully")
        return StartupResult(ok=True, completed=completed)

    async def start(self) -> StartupResult:
        """
        Run the startup sequence; any failure is fatal and exits with status 1.
        """
        result = await self.run_startup_sequence()
        if not result.ok:
            logger.error(f"❌ Failed to start server: {result.failed_step}: {result.error}",
                         exc_info=result.error)
            await self.shutdown()
            self.exit_process(1)
        return result

    async def shutdown(self) -> None:
        """
        Release resources in reverse order of acquisition. Safe to call twice.
        """
        try:
            if self.listener is not None:
                listener, self.listener = self.listener, None
                try:
                    await listener.stop()
                except Exception as e:
                    logger.error(f"Failed to stop listener: {e}")
        finally:
            if self.storage_connected:
                self.storage_connected = False
                try:
                    await self.collaborators.database.disconnect()
                except Exception as e:
                    logger.error(f"Failed to disconnect storage: {e}")

    async def serve(self) -> None:
        """
        Start the server and keep serving until the listener stops.
        """
        result = await self.start()
        if not result.ok:
            return
        loop = asyncio.get_running_loop()
        installed = self.install_signal_handlers(loop)
        try:
            await self.listener.wait_closed()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            await self.shutdown()
        logger.info("Server stopped")

    def handle_exit(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down")
        if self.listener is not None:
            self.listener.request_stop()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> List[signal.Signals]:
        """
        Route SIGINT and SIGTERM to a graceful listener stop.

        Returns:
            Signals that were installed; empty where the loop cannot
            handle signals (non-main thread, Windows)
        """
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.handle_exit, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug(f"Cannot install handler for {sig.name} on this loop")
                continue
            installed.append(sig)
        return installed

    def run(self) -> None:
        asyncio.run(self.serve())


def run_server_startup(collaborators: Optional[Collaborators] = None) -> ServerStartup:
    """
    Main entry point for server startup.

    Loads configuration and assembles the application; nothing is connected
    or bound until run() is called.

    Returns:
        ServerStartup instance ready to run
    """
    try:
        config = get_server_config()
    except ConfigurationException as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"❌ Invalid configuration: {e}")
        sys.exit(1)

    return ServerStartup(config, collaborators)
