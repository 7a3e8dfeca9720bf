"""
ormsql escaping & naming — identifier/value escaping and qualified names.

    gen.escape("O'Brien")                         -> 'O''Brien'
    gen.escape_id("users.first_name")             -> "users"."first_name"
    gen.get_escaped_field_name(User, User.id)     -> "User:id"
    gen.get_escaped_column_name(User, User.id)    -> "users"."id"
    gen.get_escaped_projection_name(User, User.id)
                                                  -> "users"."id" AS "User:id"

Every other generator routes through ``escape`` and ``escape_id``, so a
dialect changes quoting by overriding those two methods.
"""

from __future__ import annotations

import datetime
import decimal
import re
import uuid
from typing import Any, Dict, List, Optional, Type, Union, TYPE_CHECKING

from ..query.literals import LiteralBase

if TYPE_CHECKING:
    from ..models.base import Model
    from ..models.fields import Field

__all__ = ["NamingMixin"]


_QUOTE_CHARS = re.compile(r"['\"`]")
_DOT_RUNS = re.compile(r"\.+")
_FIELD_IDENTIFIER = re.compile(r'^"[^"]+"\."[^"]+"|"\w+:[\w.]+"', re.IGNORECASE)


class NamingMixin:
    """Escaping and name rendering for ``SQLQueryGenerator``."""

    # ── Escaping ─────────────────────────────────────────────────────

    def escape(self, value: Any) -> str:
        """Render ``value`` as a SQL literal."""
        if LiteralBase.is_literal(value):
            return value.to_string(self)

        if value is None:
            return "NULL"

        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"

        if isinstance(value, (int, float, decimal.Decimal)):
            return str(value)

        if isinstance(value, str):
            return "'" + value.replace("'", "''") + "'"

        if isinstance(value, datetime.datetime):
            return self.escape(value.isoformat(sep=" "))

        if isinstance(value, (datetime.date, datetime.time)):
            return self.escape(value.isoformat())

        if isinstance(value, uuid.UUID):
            return self.escape(str(value))

        if isinstance(value, (bytes, bytearray, memoryview)):
            return f"X'{bytes(value).hex()}'"

        if isinstance(value, (list, tuple, set, frozenset)):
            return "(" + ",".join(self.escape(item) for item in value) + ")"

        return self.escape(str(value))

    def escape_id(self, value: Any) -> str:
        """Quote each dot-separated segment of an identifier."""
        if LiteralBase.is_literal(value):
            return value.to_string(self)

        parts = _DOT_RUNS.split(_QUOTE_CHARS.sub("", str(value)))
        return ".".join('"' + part.replace('"', '""') + '"' for part in parts)

    def prepare_array_values_for_sql(self, values: Any) -> List[Any]:
        """
        Flatten ``values``, keep only matchable items and drop duplicates.

        ``None``, literals, strings, numbers and booleans are kept; first
        occurrence wins and ``True``/``1`` stay distinct.
        """
        seen = set()
        result: List[Any] = []

        for item in _flatten(values):
            if item is not None and not LiteralBase.is_literal(item):
                if not isinstance(item, (str, int, float, bool, decimal.Decimal)):
                    continue

            key = (type(item), item) if not LiteralBase.is_literal(item) else ("literal", id(item))
            if key in seen:
                continue

            seen.add(key)
            result.append(item)

        return result

    # ── Names ────────────────────────────────────────────────────────

    def get_escaped_field_name(
        self,
        Model: Optional[Type[Model]],
        field: Union[Field, str],
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        is_string = isinstance(field, str)
        field_name = field if is_string else field.field_name

        if Model is None and not is_string:
            Model = field.model

        if Model is None or options.get("field_name_only"):
            return self.escape_id(field_name)

        return f'"{Model.get_model_name()}:{field_name}"'

    def get_escaped_column_name(
        self,
        Model: Optional[Type[Model]],
        field: Union[Field, str],
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        is_string = isinstance(field, str)
        column_name = field if is_string else field.column_name

        if Model is None and not is_string:
            Model = field.model

        if options.get("column_name_prefix"):
            column_name = f"{options['column_name_prefix']}{column_name}"

        if Model is None or options.get("column_name_only"):
            return self.escape_id(column_name)

        return f"{self.get_escaped_table_name(Model, options)}.{self.escape_id(column_name)}"

    def get_escaped_table_name(
        self,
        model_or_field: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        from ..models.fields import Field

        Model = model_or_field.model if isinstance(model_or_field, Field) else model_or_field
        table_name = Model.get_table_name(self.connection)

        if options and options.get("table_name_prefix"):
            table_name = f"{options['table_name_prefix']}{table_name}"

        return self.escape_id(table_name)

    def get_escaped_projection_name(
        self,
        Model: Optional[Type[Model]],
        field: Union[Field, str],
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        column = self.get_escaped_column_name(Model, field, options)
        if options.get("no_projection_aliases"):
            return column

        alias = options.get("alias")
        if alias:
            return f"{column} AS {self.escape_id(alias)}"
        return f"{column} AS {self.get_escaped_field_name(Model, field, options)}"

    def get_escaped_model_fields(
        self,
        Model: Type[Model],
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, str]:
        """
        Escape every stored field of ``Model``.

        Keys are ``"Model:field"``. Values are projections (``as_projection``),
        columns (``as_column``) or field names; ``fields`` restricts the set.
        """
        options = options or {}
        model_name = Model.get_model_name()
        result: Dict[str, str] = {}

        for field in Model.iterate_fields(options.get("fields")):
            if field.type.is_virtual():
                continue

            if options.get("as_projection"):
                rendered = self.get_escaped_projection_name(Model, field, options)
            elif options.get("as_column"):
                rendered = self.get_escaped_column_name(Model, field, options)
            else:
                rendered = self.get_escaped_field_name(Model, field, options)

            result[f"{model_name}:{field.field_name}"] = rendered

        return result

    def is_field_identifier(self, value: str) -> bool:
        """True for ``"table"."column"`` pairs and quoted ``"Model:field"`` aliases."""
        return bool(_FIELD_IDENTIFIER.search(value))


def _flatten(values: Any) -> List[Any]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return [values]

    flat: List[Any] = []
    for item in values:
        flat.extend(_flatten(item))
    return flat
