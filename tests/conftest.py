"""
Shared test fixtures and models for the ormsql test suite.

Provides:
- Role, User, RoleThing, UserThing, ExtendedUser: fixture models
- generator: SQLiteQueryGenerator bound to a no-newline config
- connection: connected in-memory SQLiteConnection with every table created
"""

import pytest
import pytest_asyncio

from ormsql.config import ConnectionConfig
from ormsql.connection import SQLiteConnection
from ormsql.models import (
    AUTO_INCREMENT,
    BOOLEAN,
    DATETIME,
    INTEGER,
    NOW,
    NOW_ON_UPDATE,
    STRING,
    UUID_V4,
    UUIDV4,
    Field,
    ForeignKey,
    Model,
    Relation,
)
from ormsql.sql import PostgresQueryGenerator, SQLiteQueryGenerator


# ============================================================================
# Models
# ============================================================================


class Role(Model):
    class Meta:
        table_name = "roles"

    id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
    name = Field(STRING(64), index=True)


class User(Model):
    class Meta:
        table_name = "users"

    id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
    first_name = Field(STRING(64), index=True)
    last_name = Field(STRING(64), index=True)
    primary_role_id = Field(ForeignKey("Role:id", on_delete="SET NULL", on_update="SET NULL"))
    primary_role = Field(Relation("Role"))


class RoleThing(Model):
    class Meta:
        table_name = "role_things"

    id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
    role_id = Field(ForeignKey("Role:id", on_delete="CASCADE", on_update="CASCADE"), index=True)


class UserThing(Model):
    class Meta:
        table_name = "user_things"

    id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
    user_id = Field(ForeignKey("User:id", on_delete="CASCADE", on_update="CASCADE"), allow_null=False, index=True)
    role_thing_id = Field(ForeignKey("RoleThing:id", on_delete="CASCADE", on_update="CASCADE"), allow_null=False, index=True)


class ExtendedUser(Model):
    class Meta:
        table_name = "extended_users"
        ordering = ["id"]

    id = Field(INTEGER, primary_key=True, default=AUTO_INCREMENT)
    email = Field(STRING(256), allow_null=False, unique=True)
    first_name = Field(STRING(64), index=True)
    last_name = Field(STRING(64), index=True)
    is_over_21 = Field(BOOLEAN)
    created_at = Field(DATETIME, allow_null=False, default=NOW, index=True)
    updated_at = Field(DATETIME, allow_null=False, default=NOW_ON_UPDATE, index=True)


ALL_MODELS = [Role, User, RoleThing, UserThing, ExtendedUser]

USER_ID = "6a69f57b-9ada-45cd-8dd9-23a753a2bbf3"
OTHER_USER_ID = "6a69f57b-9ada-45cd-8dd9-23a753a2bbfc"
ROLE_ID = "81fc5ff4-a8d1-4c4b-b5a7-52d3e1f2e4b7"


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def config():
    return ConnectionConfig(newlines=False)


@pytest.fixture
def generator(config):
    return SQLiteQueryGenerator(config=config)


@pytest.fixture
def postgres_generator(config):
    return PostgresQueryGenerator(config=config)


@pytest_asyncio.fixture
async def connection():
    """Connected in-memory SQLite database with every fixture table created."""
    conn = SQLiteConnection(":memory:", ConnectionConfig(newlines=False))
    await conn.connect()
    for Model in ALL_MODELS:
        await conn.create_table(Model)
    yield conn
    await conn.disconnect()
