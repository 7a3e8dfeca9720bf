"""
ormsql - SQL query generation and result materialization for async ORMs

Complete integration of:
- Models: Field declarations, defaults, dirty tracking and a model registry
- Query: Immutable query engine, literals and a pre-parsed condition tree
- SQL: Dialect-aware SELECT/INSERT/UPDATE/DELETE and DDL generation
- Connection: Async connection façade with paging, aggregates and hooks
- Faults: Structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Configuration & Faults
# ============================================================================

from .config import ConnectionConfig, ConfigLoader, ConfigError
from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ModelFault,
    ModelNotFoundFault,
    FieldNotFoundFault,
    PrimaryKeyRequiredFault,
    QueryFault,
    OperatorValueFault,
    UnsupportedOperationFault,
    ConnectionStateFault,
)

# ============================================================================
# Models & Queries
# ============================================================================

from .models import (
    Model,
    Field,
    ModelRegistry,
    DefaultValue,
    AUTO_INCREMENT,
    NOW,
    NOW_ON_UPDATE,
    UUID_V4,
    STRING,
    TEXT,
    INTEGER,
    BIGINT,
    FLOAT,
    BOOLEAN,
    UUIDV4,
    DATETIME,
    ForeignKey,
    Relation,
)
from .query import (
    QueryEngine,
    Literal,
    FieldLiteral,
    CountLiteral,
    SumLiteral,
    AverageLiteral,
    MinLiteral,
    MaxLiteral,
    DistinctLiteral,
)

# ============================================================================
# SQL Generation & Connections
# ============================================================================

from .sql import SQLQueryGenerator, SQLiteQueryGenerator, PostgresQueryGenerator
from .connection import SQLConnectionBase, SQLiteConnection, QueryResult

__all__ = [
    "__version__",
    "ConnectionConfig",
    "ConfigLoader",
    "ConfigError",
    "Fault",
    "FaultDomain",
    "Severity",
    "ModelFault",
    "ModelNotFoundFault",
    "FieldNotFoundFault",
    "PrimaryKeyRequiredFault",
    "QueryFault",
    "OperatorValueFault",
    "UnsupportedOperationFault",
    "ConnectionStateFault",
    "Model",
    "Field",
    "ModelRegistry",
    "DefaultValue",
    "AUTO_INCREMENT",
    "NOW",
    "NOW_ON_UPDATE",
    "UUID_V4",
    "STRING",
    "TEXT",
    "INTEGER",
    "BIGINT",
    "FLOAT",
    "BOOLEAN",
    "UUIDV4",
    "DATETIME",
    "ForeignKey",
    "Relation",
    "QueryEngine",
    "Literal",
    "FieldLiteral",
    "CountLiteral",
    "SumLiteral",
    "AverageLiteral",
    "MinLiteral",
    "MaxLiteral",
    "DistinctLiteral",
    "SQLQueryGenerator",
    "SQLiteQueryGenerator",
    "PostgresQueryGenerator",
    "SQLConnectionBase",
    "SQLiteConnection",
    "QueryResult",
]
