"""
ormsql PostgreSQL dialect — DEFAULT in VALUES rows, SERIAL auto-increment
and RETURNING on every write.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Type, TYPE_CHECKING

from ..models.fields import Field
from .generator import SQLQueryGenerator

if TYPE_CHECKING:
    from ..models.base import Model

__all__ = ["PostgresQueryGenerator"]


class PostgresQueryGenerator(SQLQueryGenerator):
    dialect = "postgresql"

    def blank_insert_value(self) -> str:
        return "DEFAULT"

    def generate_column_declaration_statement(
        self,
        Model: Type[Model],
        field: Field,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        # SERIAL carries the auto-increment
        return super().generate_column_declaration_statement(
            Model,
            field,
            self.stack_assign(options, {"no_auto_increment_default": True}),
        )

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
