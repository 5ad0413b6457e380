"""
Pytest configuration and shared fakes for the backend tests.
Adds the backend directory to sys.path so `import shared` works.
"""

import os
import sys
from typing import List, Optional

import pytest

backend_dir = os.path.join(os.path.dirname(__file__), '..')
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from shared.startup.config import DeploymentMode, ServerConfig  # noqa: E402
from shared.startup.services import Collaborators  # noqa: E402


class FakeDatabase:
    def __init__(self, calls: List[str], error: Optional[BaseException] = None):
        self.calls = calls
        self.error = error

    async def connect(self):
        self.calls.append('connect_storage')
        if self.error is not None:
            raise self.error

    async def disconnect(self):
        self.calls.append('disconnect_storage')


class FakeListener:
    def __init__(self, calls: List[str], error: Optional[BaseException] = None):
        self.calls = calls
        self.error = error

    async def start(self):
        self.calls.append('start_listener')
        if self.error is not None:
            raise self.error

    async def wait_closed(self):
        self.calls.append('listener_closed')

    def request_stop(self):
        self.calls.append('request_stop')

    async def stop(self):
        self.calls.append('stop_listener')


def make_collaborators(calls: List[str], storage_error=None, permissions_error=None,
                       admin_error=None, listener_error=None, routes=None, storage_routes=None):
    """Collaborators that record every call, in order, into `calls`."""

    async def update_permissions():
        calls.append('update_permissions')
        if permissions_error is not None:
            raise permissions_error

    async def create_admin_user():
        calls.append('create_admin_user')
        if admin_error is not None:
            raise admin_error

    def listener_factory(app, config):
        calls.append('create_listener')
        return FakeListener(calls, listener_error)

    collaborators = Collaborators(
        database=FakeDatabase(calls, storage_error),
        update_permissions=update_permissions,
        create_admin_user=create_admin_user,
        listener_factory=listener_factory,
    )
    if routes is not None:
        collaborators.routes = routes
    if storage_routes is not None:
        collaborators.storage_routes = storage_routes
    return collaborators


@pytest.fixture
def calls():
    return []


@pytest.fixture
def dev_config():
    return ServerConfig(environment=DeploymentMode.DEVELOPMENT)


@pytest.fixture
def prod_config():
    return ServerConfig(environment=DeploymentMode.PRODUCTION)


@pytest.fixture
def collaborators_factory(calls):
    def factory(**kwargs):
        return make_collaborators(calls, **kwargs)
    return factory
