#!/usr/bin/env python3
"""
Development seeding for Inculab REST
Permission catalogue upkeep and bootstrap admin account creation.

Both operations are idempotent: running them on every development start
only inserts what is missing.

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
"""

import asyncio
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import (
    Column, DateTime, Integer, MetaData, String, Table, UniqueConstraint, select
)
from sqlalchemy.exc import SQLAlchemyError

from shared.exceptions import SeedingException
from .database import Database

logger = logging.getLogger(__name__)

ADMIN_ROLE = 'admin'
PASSWORD_HASH_ITERATIONS = 260000

# Permission name -> description
PERMISSION_CATALOGUE: Dict[str, str] = {
    'users:read': 'List and view user accounts',
    'users:write': 'Create, update and deactivate user accounts',
    'permissions:read': 'View roles and permissions',
    'permissions:write': 'Grant and revoke permissions',
    'storage:read': 'Download stored objects',
    'storage:write': 'Upload and delete stored objects',
}

metadata = MetaData()

permissions_table = Table(
    'permissions', metadata,
    Column('name', String(100), primary_key=True),
    Column('description', String(255), nullable=False),
)

role_permissions_table = Table(
    'role_permissions', metadata,
    Column('role', String(50), primary_key=True),
    Column('permission', String(100), primary_key=True),
)

users_table = Table(
    'users', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('email', String(255), nullable=False),
    Column('password_hash', String(255), nullable=False),
    Column('role', String(50), nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('email', name='uq_users_email'),
)


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """
    Hash a password with PBKDF2-SHA256.

    Returns:
        String of the form pbkdf2_sha256$<iterations>$<salt>$<hex digest>
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), PASSWORD_HASH_ITERATIONS)
    return f"pbkdf2_sha256${PASSWORD_HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt, expected = password_hash.split('$')
    except ValueError:
        return False
    if algorithm != 'pbkdf2_sha256':
        return False
    digest = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), int(iterations))
    return secrets.compare_digest(digest.hex(), expected)


def _update_permissions_sync(database: Database) -> int:
    engine = database.get_engine()
    metadata.create_all(engine, tables=[permissions_table, role_permissions_table])

    inserted = 0
    with engine.begin() as conn:
        existing = set(conn.execute(select(permissions_table.c.name)).scalars())
        for name, description in PERMISSION_CATALOGUE.items():
            if name not in existing:
                conn.execute(permissions_table.insert().values(name=name, description=description))
                inserted += 1
            else:
                conn.execute(
                    permissions_table.update()
                    .where(permissions_table.c.name == name)
                    .values(description=description)
                )

        granted = set(conn.execute(
            select(role_permissions_table.c.permission).where(role_permissions_table.c.role == ADMIN_ROLE)
        ).scalars())
        for name in PERMISSION_CATALOGUE:
            if name not in granted:
                conn.execute(role_permissions_table.insert().values(role=ADMIN_ROLE, permission=name))
    return inserted


async def update_permissions(database: Database) -> None:
    """
    Bring the permission catalogue and admin grants up to date.

    Raises:
        SeedingException: If the database rejects the update
    """
    try:
        inserted = await asyncio.to_thread(_update_permissions_sync, database)
    except SQLAlchemyError as e:
        raise SeedingException(f"Permission update failed: {e}", step='update_permissions') from e
    logger.info(f"Permissions updated ({inserted} new, {len(PERMISSION_CATALOGUE)} total)")


def _create_admin_user_sync(database: Database, email: str, password: str) -> bool:
    engine = database.get_engine()
    metadata.create_all(engine, tables=[users_table])

    with engine.begin() as conn:
        existing = conn.execute(
            select(users_table.c.id).where(users_table.c.email == email)
        ).first()
        if existing is not None:
            return False
        conn.execute(users_table.insert().values(
            email=email,
            password_hash=hash_password(password),
            role=ADMIN_ROLE,
            created_at=datetime.now(timezone.utc),
        ))
    return True


async def create_admin_user(database: Database, email: str, password: Optional[str] = None) -> None:
    """
    Create the bootstrap admin account if it does not exist yet.

    When no password is configured a random one is generated and printed once
    to the console at account creation; it never goes to the log.

    Raises:
        SeedingException: If the database rejects the insert
    """
    generated = password is None
    if generated:
        password = secrets.token_urlsafe(12)

    try:
        created = await asyncio.to_thread(_create_admin_user_sync, database, email, password)
    except SQLAlchemyError as e:
        raise SeedingException(f"Admin user creation failed: {e}", step='create_admin_user') from e

    if not created:
        logger.info(f"Admin user {email} already exists")
    elif generated:
        logger.warning(f"Admin user {email} created with a generated password; set ADMIN_PASSWORD to choose one")
        print(f"Generated admin password for {email}: {password}")
    else:
        logger.info(f"Admin user {email} created")
