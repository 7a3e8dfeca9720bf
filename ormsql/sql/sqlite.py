"""
ormsql SQLite dialect.

Differences from the base generator:

    - joins: INNER, LEFT (never OUTER) and CROSS only
    - LIKE / NOT LIKE carry ``ESCAPE '\\'``
    - INSERT / UPDATE / DELETE return the primary key and remote defaults
    - UPDATE puts RETURNING before ORDER BY / LIMIT
    - no CASCADE/RESTRICT on DROP INDEX, DROP COLUMN or DROP TABLE
    - TRUNCATE is spelled ``DELETE FROM``
    - no DISTINCT ON; a field-bound DISTINCT in a projection is plain DISTINCT
    - no DEFAULT keyword inside VALUES rows
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Type, TYPE_CHECKING

from ..models.fields import Field
from ..query.literals import LiteralBase
from .generator import SQLQueryGenerator

if TYPE_CHECKING:
    from ..models.base import Model

__all__ = ["SQLiteQueryGenerator"]


class SQLiteQueryGenerator(SQLQueryGenerator):
    dialect = "sqlite"
    supports_default_in_values = False
    supports_cascade = False
    update_returning_before_order = True

    def generate_sql_join_type(self, join_type: Optional[str], outer: bool = False, options: Optional[Dict[str, Any]] = None) -> str:
        if not join_type or join_type == "inner":
            return "INNER JOIN"
        if join_type == "left":
            return "LEFT JOIN"
        if join_type == "cross":
            return "CROSS JOIN"
        return join_type

    def generate_condition_postfix(self, context: Dict[str, Any]) -> str:
        if context.get("sql_operator") in ("LIKE", "NOT LIKE"):
            return "ESCAPE '\\'"
        return ""

    def generate_cascade_flag(self, options: Optional[Dict[str, Any]] = None) -> str:
        return ""

    def generate_foreign_key_constraint(
        self,
        field: Field,
        target_field: Field,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        fk_type = field.type
        sql = (
            f"FOREIGN KEY({self.escape_id(field.column_name)}) "
            f"REFERENCES {self.escape_id(target_field.model.get_table_name(self.connection))}"
            f"({self.escape_id(target_field.column_name)})"
        )

        if getattr(fk_type, "deferred", False):
            sql += " DEFERRABLE INITIALLY DEFERRED"
        if getattr(fk_type, "on_delete", None):
            sql += f" ON DELETE {fk_type.on_delete.upper()}"
        if getattr(fk_type, "on_update", None):
            sql += f" ON UPDATE {fk_type.on_update.upper()}"

        return sql

    def generate_insert_statement_tail(
        self,
        Model: Type[Model],
        models: Sequence[Any],
        options: Dict[str, Any],
        context: Dict[str, Any],
    ) -> str:
        return self._collect_returning_fields(Model, models, options, context)

    def generate_update_statement_tail(
        self,
        Model: Type[Model],
        model: Any,
        options: Dict[str, Any],
        context: Dict[str, Any],
    ) -> str:
        return self._collect_returning_fields(Model, [model], options, context)

    def generate_truncate_table_statement(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> str:
        return f"DELETE FROM {self.get_escaped_table_name(Model, options)}"

    def _render_distinct_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        field = literal.get_field(self.connection) or literal.value_of()
        if not field or not options.get("is_sub_field"):
            return "DISTINCT"

        if LiteralBase.is_literal(field):
            inner = field.to_string(self, self.stack_assign(options, {"no_projection_aliases": True}))
        else:
            inner = self.get_escaped_column_name(field.model, field, self.stack_assign(options, literal.options))

        return f"DISTINCT {inner}" if inner else "DISTINCT"
