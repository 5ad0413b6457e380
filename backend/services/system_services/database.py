#!/usr/bin/env python3
"""
Database connection for Inculab REST
Owns the SQLAlchemy engine used by the seeding steps and business modules

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError

from shared.exceptions import StorageConnectionException

logger = logging.getLogger(__name__)


def _ensure_sqlite_parent_dir(db_url: str) -> None:
    url = make_url(db_url)
    if url.get_backend_name() != 'sqlite':
        return
    database = url.database
    if not database or database == ':memory:':
        return
    Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(db_url: str) -> Engine:
    _ensure_sqlite_parent_dir(db_url)
    connect_args = {}
    if db_url.startswith('sqlite:'):
        connect_args = {'check_same_thread': False}
    return create_engine(db_url, future=True, pool_pre_ping=True, connect_args=connect_args)


class Database:
    """Storage collaborator: connect, verify and release the SQL engine"""

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[Engine] = None

    @property
    def connected(self) -> bool:
        return self.engine is not None

    async def connect(self) -> None:
        """
        Create the engine and verify the connection with a round trip.

        Raises:
            StorageConnectionException: If the database is unreachable
        """
        if self.engine is not None:
            return
        self.engine = await asyncio.to_thread(self._connect_sync)

    def _connect_sync(self) -> Engine:
        try:
            engine = create_db_engine(self.url)
        except (SQLAlchemyError, ImportError, ValueError, OSError) as e:
            raise StorageConnectionException(f"Invalid database configuration: {e}", step='connect_storage') from e
        try:
            with engine.connect() as conn:
                conn.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            engine.dispose()
            raise StorageConnectionException(f"Database connection failed: {e}", step='connect_storage') from e
        logger.debug(f"Database reachable at {engine.url.render_as_string(hide_password=True)}")
        return engine

    async def disconnect(self) -> None:
        if self.engine is None:
            return
        engine, self.engine = self.engine, None
        await asyncio.to_thread(engine.dispose)
        logger.info("Database connection closed")

    def get_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError(
                "Database is not connected. Storage must be connected during server startup."
            )
        return self.engine
