"""
ormsql model fields — one descriptor per column.

    class Role(Model):
        class Meta:
            table_name = "roles"

        id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
        name = Field(STRING(64), index=True)

Reading an attribute returns the instance's current value; assigning one
records the change in the instance's dirty-field table.
"""

from __future__ import annotations

import copy
from typing import Any, List, Optional, Type, Union, TYPE_CHECKING

from .types import FieldType

if TYPE_CHECKING:
    from .base import Model

__all__ = ["Field", "UNSET"]


# ── Sentinel ─────────────────────────────────────────────────────────────────

class _Unset:
    """Sentinel for distinguishing 'not set' from None."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<UNSET>"

    def __bool__(self):
        return False

UNSET = _Unset()


IndexSpec = Union[bool, str, List[Union[str, List[str]]]]


# ── Field ────────────────────────────────────────────────────────────────────

class Field:
    """
    Column descriptor.

    Parameters:
        type        – column type (``STRING(64)``, ``ForeignKey("Role:id")``, ...)
        allow_null  – allow NULL (default True)
        primary_key – mark as primary key
        unique      – add UNIQUE constraint
        default     – static value, ``DefaultValue`` or literal
        index       – True, a field name, or a list of field names / lists
                      of field names (combo indexes)
        db_column   – override column name
    """

    _creation_counter = 0

    def __init__(
        self,
        type: FieldType,
        *,
        allow_null: bool = True,
        primary_key: bool = False,
        unique: bool = False,
        default: Any = UNSET,
        index: IndexSpec = False,
        db_column: Optional[str] = None,
    ):
        self.type = type
        self.allow_null = allow_null
        self.primary_key = primary_key
        self.unique = unique
        self.default = default
        self.index = index
        self.db_column = db_column

        # Set by the metaclass
        self.field_name: str = ""
        self.model: Optional[Type[Model]] = None

        self._order = Field._creation_counter
        Field._creation_counter += 1

    def __set_name__(self, owner: type, name: str) -> None:
        self.field_name = name

    # ── Descriptor protocol ──────────────────────────────────────────

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return instance._get_value(self.field_name)

    def __set__(self, instance: Any, value: Any) -> None:
        instance._set_value(self.field_name, value)

    # ── Attributes ───────────────────────────────────────────────────

    @property
    def column_name(self) -> str:
        """Database column name."""
        return self.db_column or self.field_name

    @property
    def default_value(self) -> Any:
        return None if self.default is UNSET else self.default

    def has_default(self) -> bool:
        return self.default is not UNSET

    def get_qualified_name(self) -> str:
        model_name = self.model.get_model_name() if self.model else ""
        return f"{model_name}:{self.field_name}"

    def set_model(self, model: Type[Model]) -> None:
        self.model = model

    def clone(self, **attributes: Any) -> Field:
        """Copy of this field with ``attributes`` replaced, bound to the same model."""
        new_field = copy.copy(self)
        for key, value in attributes.items():
            if key == "column_name":
                key = "db_column"
            if not hasattr(new_field, key):
                raise AttributeError(f"Field has no attribute '{key}'")
            setattr(new_field, key, value)
        return new_field

    def __repr__(self) -> str:
        return f"<Field: {self.get_qualified_name()}>"

