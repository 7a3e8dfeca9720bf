"""
ormsql models — schema declaration, dirty tracking and the model registry.
"""

from .types import (
    FieldType,
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
from .defaults import (
    DefaultValue,
    check_default_value_flags,
    AUTO_INCREMENT,
    NOW,
    NOW_ON_UPDATE,
    UUID_V4,
)
from .fields import Field, UNSET
from .options import Options
from .registry import ModelRegistry
from .base import Model, ModelMeta, DirtyState

__all__ = [
    # Types
    "FieldType",
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
    # Defaults
    "DefaultValue",
    "check_default_value_flags",
    "AUTO_INCREMENT",
    "NOW",
    "NOW_ON_UPDATE",
    "UUID_V4",
    # Schema
    "Field",
    "UNSET",
    "Options",
    "ModelRegistry",
    "Model",
    "ModelMeta",
    "DirtyState",
]
