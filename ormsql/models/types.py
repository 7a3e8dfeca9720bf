"""
ormsql field types — column types and their per-dialect SQL spelling.

    class User(Model):
        id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
        first_name = Field(STRING(64), index=True)
        primary_role_id = Field(ForeignKey("Role:id", on_delete="SET NULL"))
        primary_role = Field(Relation("Role"))
"""

from __future__ import annotations

from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .fields import Field
    from .base import Model

__all__ = [
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
]


def _dialect_of(connection: Any) -> str:
    return getattr(connection, "dialect", None) or "sqlite"


class FieldType:
    """
    Base column type.

    ``sql_types`` maps a dialect name to the SQL type; ``"default"`` is
    used for dialects without an entry.
    """

    sql_types: Dict[str, str] = {"default": "TEXT"}

    def __call__(self, *args: Any, **kwargs: Any) -> FieldType:
        # Allows both ``TEXT`` and ``TEXT()`` in field declarations
        return self.__class__(*args, **kwargs)

    def is_virtual(self) -> bool:
        return False

    def is_foreign_key(self) -> bool:
        return False

    def is_relational(self) -> bool:
        return False

    def sql_type(self, dialect: str, **options: Any) -> str:
        return self.sql_types.get(dialect, self.sql_types["default"])

    def to_connection_type(self, connection: Any = None, **options: Any) -> str:
        """SQL type of this column for ``connection``'s dialect."""
        return self.sql_type(_dialect_of(connection), **options)

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash(type(self).__name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StringType(FieldType):
    def __init__(self, length: int = 256):
        self.length = length

    def sql_type(self, dialect: str, **options: Any) -> str:
        return f"VARCHAR({self.length})"

    def __repr__(self) -> str:
        return f"STRING({self.length})"


class TextType(FieldType):
    sql_types = {"default": "TEXT"}


class IntegerType(FieldType):
    sql_types = {"default": "INTEGER"}

    def sql_type(self, dialect: str, **options: Any) -> str:
        if dialect == "postgresql" and options.get("default_value") == "AUTOINCREMENT":
            return "SERIAL"
        return super().sql_type(dialect, **options)


class BigIntegerType(FieldType):
    sql_types = {"default": "BIGINT"}

    def sql_type(self, dialect: str, **options: Any) -> str:
        if dialect == "postgresql" and options.get("default_value") == "AUTOINCREMENT":
            return "BIGSERIAL"
        return super().sql_type(dialect, **options)


class FloatType(FieldType):
    sql_types = {"default": "REAL", "postgresql": "DOUBLE PRECISION"}


class BooleanType(FieldType):
    sql_types = {"default": "BOOLEAN"}


class UUIDType(FieldType):
    sql_types = {"default": "VARCHAR(36)", "postgresql": "UUID"}


class DateTimeType(FieldType):
    sql_types = {"default": "DATETIME", "postgresql": "TIMESTAMP"}


STRING = StringType()
TEXT = TextType()
INTEGER = IntegerType()
BIGINT = BigIntegerType()
FLOAT = FloatType()
BOOLEAN = BooleanType()
UUIDV4 = UUIDType()
DATETIME = DateTimeType()


# ── Relational types ─────────────────────────────────────────────────────────


class ForeignKey(FieldType):
    """
    Column that references ``"Model:field"`` on another model.

    The column type is borrowed from the target field.
    """

    def __init__(
        self,
        target: str,
        *,
        on_delete: Optional[str] = None,
        on_update: Optional[str] = None,
        deferred: bool = False,
    ):
        model_name, _, field_name = target.partition(":")
        self.target_model_name = model_name
        self.target_field_name = field_name or None
        self.on_delete = on_delete
        self.on_update = on_update
        self.deferred = deferred

    def is_foreign_key(self) -> bool:
        return True

    def is_relational(self) -> bool:
        return True

    def get_target_model(self, connection: Any = None) -> type[Model]:
        from .registry import ModelRegistry
        from ..faults import ModelNotFoundFault

        Model = ModelRegistry.get(self.target_model_name)
        if Model is None:
            raise ModelNotFoundFault(self.target_model_name)
        return Model

    def get_target_field(self, connection: Any = None) -> Field:
        from ..faults import FieldNotFoundFault

        Model = self.get_target_model(connection)
        if self.target_field_name is None:
            field = Model.get_primary_key_field()
        else:
            field = Model.get_field(self.target_field_name)

        if field is None:
            raise FieldNotFoundFault(self.target_model_name, self.target_field_name or "<primary key>")
        return field

    def sql_type(self, dialect: str, **options: Any) -> str:
        target = self.get_target_field()
        # The referencing column never auto-increments
        return target.type.sql_type(dialect)

    def __repr__(self) -> str:
        return f"ForeignKey({self.target_model_name}:{self.target_field_name})"


class Relation(FieldType):
    """Virtual (non-stored) accessor for related model instances."""

    def __init__(self, target: str, *, many: bool = False):
        self.target_model_name = target
        self.many = many

    def is_virtual(self) -> bool:
        return True

    def is_relational(self) -> bool:
        return True

    def sql_type(self, dialect: str, **options: Any) -> str:
        return ""

    def __repr__(self) -> str:
        return f"Relation({self.target_model_name}, many={self.many})"
