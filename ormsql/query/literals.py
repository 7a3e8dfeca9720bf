"""
ormsql literals — values rendered as raw or aggregate SQL, never escaped.

Each literal class carries a ``kind`` tag; rendering is dispatched once to
the query generator (``render_literal``), which owns the per-kind SQL.

    CountLiteral()                      -> COUNT(*)
    SumLiteral("User:age", alias="t")   -> SUM("users"."age") AS "t"
    DistinctLiteral("User:first_name")  -> DISTINCT ON("users"."first_name")
    Literal("CURRENT_TIMESTAMP")        -> CURRENT_TIMESTAMP
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "LiteralBase",
    "Literal",
    "FieldLiteral",
    "CountLiteral",
    "SumLiteral",
    "AverageLiteral",
    "MinLiteral",
    "MaxLiteral",
    "DistinctLiteral",
]


class LiteralBase:
    """
    Base literal.

    Options understood by the renderer:
        alias                   – projection alias (`` AS "alias"``)
        remote                  – value is produced by the database
        escape                  – False to suppress escaping when used as a default
        no_default_statement    – omit the ``DEFAULT`` keyword in column declarations
    """

    kind = "base"

    def __init__(self, value: Any = None, **options: Any):
        self.value = value
        self.options: Dict[str, Any] = options

    @staticmethod
    def is_literal(value: Any) -> bool:
        return isinstance(value, LiteralBase)

    def value_of(self) -> Any:
        return self.value

    def get_field(self, connection: Any = None) -> Any:
        """
        Resolve the wrapped value to a Field, a nested literal, or None.

        Strings are read as fully qualified ``"Model:field"`` names.
        """
        from ..models.fields import Field

        value = self.value
        if value is None or isinstance(value, (LiteralBase, Field)):
            return value

        if isinstance(value, str) and ":" in value:
            from .utils import resolve_qualified_field
            return resolve_qualified_field(value)

        return None

    def to_string(self, connection: Any = None, options: Optional[Dict[str, Any]] = None) -> str:
        generator = _resolve_generator(connection)
        if generator is None:
            from ..faults import QueryFault
            raise QueryFault(type(self).__name__, "to_string", "a connection or query generator is required")
        return generator.render_literal(self, options)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class Literal(LiteralBase):
    """Raw SQL passthrough."""

    kind = "raw"

    def to_string(self, connection: Any = None, options: Optional[Dict[str, Any]] = None) -> str:
        generator = _resolve_generator(connection)
        if generator is None:
            return str(self.value)
        return generator.render_literal(self, options)

    def __str__(self) -> str:
        return str(self.value)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Literal) and other.value == self.value

    def __hash__(self) -> int:
        return hash(("raw", self.value))


class FieldLiteral(LiteralBase):
    kind = "field"


class CountLiteral(LiteralBase):
    kind = "count"


class SumLiteral(LiteralBase):
    kind = "sum"


class AverageLiteral(LiteralBase):
    kind = "average"


class MinLiteral(LiteralBase):
    kind = "min"


class MaxLiteral(LiteralBase):
    kind = "max"


class DistinctLiteral(LiteralBase):
    kind = "distinct"


def _resolve_generator(connection: Any) -> Any:
    if connection is None:
        return None
    if hasattr(connection, "render_literal"):
        return connection
    if hasattr(connection, "get_query_generator"):
        return connection.get_query_generator()
    return None
