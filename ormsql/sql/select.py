"""
ormsql SELECT assembler.

    SELECT <projection> FROM <root> <joins> WHERE <conds>
        GROUP BY <g> HAVING (<h>) ORDER BY <o> LIMIT n OFFSET m

Empty parts are dropped and the rest joined with single spaces. The
projection is keyed by ``"Model:field"`` (or the rendered text of a
literal) so the caller can map result columns back to fields.
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, List, Optional, Tuple, Union

from ..faults import QueryFault
from ..models.fields import Field
from ..models.registry import ModelRegistry
from ..query.engine import ProjectionEntry, QueryEngine
from ..query.literals import LiteralBase

__all__ = ["SelectMixin"]


_PROJECTION_ALIAS = re.compile(r'(AS\s+)?"(\w+):([\w.]+)"', re.IGNORECASE)
_TABLE_COLUMN = re.compile(r'"([^"]+)"\."([^"]+)"')
_FROM_SPLIT = re.compile(r"\s+FROM\s+", re.IGNORECASE)
_SELECT_PREFIX = re.compile(r"^SELECT\s+", re.IGNORECASE)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SelectMixin:
    """SELECT statement assembly for ``SQLQueryGenerator``."""

    # ── Projection ───────────────────────────────────────────────────

    def get_query_engine_order(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> Dict[str, ProjectionEntry]:
        """Explicit query order, else the root model's default order."""
        options = options or {}
        context = query.get_operation_context()

        if context.order is not None:
            return context.order

        return self.get_default_order(context.root_model, options)

    def get_projected_fields(
        self,
        query: QueryEngine,
        options: Optional[Dict[str, Any]] = None,
        as_map: bool = False,
    ) -> Union[Dict[str, str], List[str]]:
        options = self.stack_assign(options, {"is_projection": True})
        context = query.get_operation_context()
        projection = dict(context.projection)

        if not options.get("is_sub_query"):
            order = self.get_query_engine_order(query, options)
            if order and self.is_order_supported_in_context(options):
                for key, entry in order.items():
                    projection.setdefault(key, ProjectionEntry(entry.value))

        models_used = query.get_all_models_used_in_query()
        result: Dict[str, str] = {}

        for key, entry in projection.items():
            value = entry.value

            if isinstance(value, str):
                result[key] = value
                continue

            if LiteralBase.is_literal(value):
                rendered = value.to_string(self, options)
                if rendered:
                    result[rendered] = rendered
                continue

            if value.model not in models_used:
                continue

            result[value.get_qualified_name()] = self.get_escaped_projection_name(value.model, value, options)

        return result if as_map else list(result.values())

    def generate_select_query_field_projection(
        self,
        query: QueryEngine,
        options: Optional[Dict[str, Any]] = None,
        as_map: bool = False,
    ) -> Union[str, Dict[str, str]]:
        projected = self.get_projected_fields(query, options, as_map=True)
        if as_map:
            return projected

        projection = ",".join(projected.values())
        distinct = query.get_operation_context().distinct
        if distinct is None:
            return projection

        prefix = distinct.to_string(self, {"is_projection": True})
        return f"{prefix} {projection}" if prefix else projection

    # ── ORDER / GROUP / LIMIT ────────────────────────────────────────

    def generate_order_clause(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        order = self.get_query_engine_order(query, options)
        if not order:
            return ""

        context_order_support = self.is_order_supported_in_context(options)
        if not context_order_support:
            return ""

        projection_fields = options.get("projection_fields")
        models_used = query.get_all_models_used_in_query()
        reverse = bool(options.get("reverse_order"))
        parts: List[str] = []

        for key, entry in order.items():
            value = entry.value

            if projection_fields is not None and context_order_support == "PROJECTION_ONLY":
                if LiteralBase.is_literal(value):
                    lookup = value.to_string(self, self.stack_assign(options, {"is_projection": True}))
                else:
                    lookup = key
                if lookup not in projection_fields:
                    continue

            if LiteralBase.is_literal(value):
                escaped = value.to_string(self, self.stack_assign(options, {"is_projection": False, "no_projection_aliases": True}))
            elif isinstance(value, str):
                escaped = value
            else:
                if value.model not in models_used:
                    continue
                escaped = self.get_escaped_column_name(value.model, value, options)

            descending = entry.direction == "-"
            if reverse:
                descending = not descending

            parts.append(f"{escaped} {'DESC' if descending else 'ASC'}")

        if not parts:
            return ""

        return f"ORDER BY {','.join(parts)}"

    def _render_group_entry(self, entry: ProjectionEntry, options: Dict[str, Any]) -> str:
        value = entry.value
        if LiteralBase.is_literal(value):
            return value.to_string(self, self.stack_assign(options, {"no_projection_aliases": True}))
        if isinstance(value, str):
            return value
        return self.get_escaped_column_name(value.model, value, options)

    def generate_group_by_clause(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        group_by = query.get_operation_context().group_by
        if not group_by:
            return ""

        options = options or {}
        parts = [self._render_group_entry(entry, options) for entry in group_by.values()]
        return f"GROUP BY {','.join(part for part in parts if part)}"

    def generate_having_clause(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        having = query.get_operation_context().having
        if having is None:
            return ""

        where = self.generate_select_where_conditions(having, options)
        return f"HAVING ({where})" if where else ""

    def generate_group_by_and_having_clause(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        group_by = self.generate_group_by_clause(query, options)
        if not group_by:
            return ""

        having = self.generate_having_clause(query, options)
        return f"{group_by} {having}" if having else group_by

    def generate_limit_clause(self, limit: Any, options: Optional[Dict[str, Any]] = None) -> str:
        if LiteralBase.is_literal(limit):
            return f"LIMIT {limit.to_string(self)}"
        return f"LIMIT {limit}"

    def generate_offset_clause(self, offset: Any, options: Optional[Dict[str, Any]] = None) -> str:
        if LiteralBase.is_literal(offset):
            return f"OFFSET {offset.to_string(self)}"
        return f"OFFSET {offset}"

    def generate_select_order_limit_offset(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        context = query.get_operation_context()
        limit = context.limit
        offset = context.offset
        has_limit = _is_number(limit) and math.isfinite(limit)
        parts: List[str] = []

        if (
            options.get("order_clause") is not False
            and not (options.get("order_clause_only_if_limited") and not has_limit)
            and self.is_order_supported_in_context(options)
        ):
            order_clause = self.generate_order_clause(query, options)
            if order_clause:
                parts.append(order_clause)
                if not has_limit and options.get("force_limit"):
                    limit = options["force_limit"]
                    offset = 0

        if self.is_limit_supported_in_context(options):
            if LiteralBase.is_literal(limit) or (_is_number(limit) and math.isfinite(limit)):
                parts.append(self.generate_limit_clause(limit, options))

            if LiteralBase.is_literal(offset) or (_is_number(offset) and math.isfinite(offset)):
                parts.append(self.generate_offset_clause(offset, options))

        return " ".join(parts)

    def generate_where_and_order_limit_offset_parts(
        self,
        query: QueryEngine,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, str]:
        """``(where, order_limit_offset)``; the WHERE part carries its keyword."""
        where = self.generate_select_where_conditions(query, options)
        return (
            f"WHERE {where}" if where else "",
            self.generate_select_order_limit_offset(query, options),
        )

    def generate_where_and_order_limit_offset(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        return " ".join(part for part in self.generate_where_and_order_limit_offset_parts(query, options) if part)

    # ── SELECT ───────────────────────────────────────────────────────

    def generate_select_statement(
        self,
        query: QueryEngine,
        options: Optional[Dict[str, Any]] = None,
    ) -> Union[str, Tuple[str, Dict[str, str]]]:
        """
        Render a full SELECT for ``query``.

        With ``return_field_projection`` the result is ``(sql, projection)``
        where ``projection`` maps ``"Model:field"`` keys to rendered items.
        """
        if not QueryEngine.is_query(query):
            raise QueryFault("<unknown>", "select", "a query is required")

        options = dict(options or {})
        if options.get("include_relations"):
            query = query.project("*")

        root_model = query.get_operation_context().root_model
        if root_model is None:
            raise QueryFault("<unknown>", "select", "no root model found for query")

        projection_fields = self.generate_select_query_field_projection(query, options, as_map=True)
        sub_options = self.stack_assign(options, {"projection_fields": projection_fields})

        sql_parts = [
            "SELECT",
            self.generate_select_query_field_projection(query, options),
            self.generate_from_table_or_table_join(root_model, None, options),
            self.generate_select_query_join_tables(query, options),
        ]

        where, order_limit_offset = self.generate_where_and_order_limit_offset_parts(query, sub_options)
        sql_parts.append(where)
        sql_parts.append(self.generate_group_by_and_having_clause(query, options))
        sql_parts.append(order_limit_offset)

        sql = " ".join(part for part in sql_parts if part)

        if options.get("return_field_projection"):
            return sql, projection_fields
        return sql

    def to_connection_string(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        return self.generate_select_statement(query, self.stack_assign(options, {"return_field_projection": False}))

    # ── Projection parsing ───────────────────────────────────────────

    def parse_field_projection(self, text: str, get_raw_field: bool = False) -> Union[str, Field]:
        """
        Map a projected item back to ``"Model:field"``.

            '"users"."id" AS "User:id"'   -> 'User:id'
            'COUNT("users"."id")'         -> 'User:id'
            'COUNT(*)'                    -> 'COUNT(*)'
        """
        model_name = field_name = None

        match = _PROJECTION_ALIAS.search(text)
        if match:
            model_name, field_name = match.group(2), match.group(3)
        else:
            match = _TABLE_COLUMN.search(text)
            if match:
                field = ModelRegistry.find_field_by_column(match.group(1), match.group(2))
                if field is not None:
                    if get_raw_field:
                        return field
                    model_name, field_name = field.model.get_model_name(), field.field_name

        if not model_name or not field_name:
            return text

        if get_raw_field:
            Model = ModelRegistry.get(model_name)
            field = Model.get_field(field_name) if Model is not None else None
            if field is not None:
                return field

        return f"{model_name}:{field_name}"

    def parse_field_projection_to_field_map(self, select_sql: str) -> Dict[str, str]:
        """``{"Model:field" or raw item: projected item}`` for a raw SELECT."""
        head = _FROM_SPLIT.split(select_sql.replace("\r", " ").replace("\n", " "), maxsplit=1)[0]
        head = _SELECT_PREFIX.sub("", head.strip())

        result: Dict[str, str] = {}
        for part in head.split(","):
            part = part.strip()
            if not part:
                continue

            parsed = self.parse_field_projection(part, get_raw_field=True)
            if isinstance(parsed, Field):
                result[parsed.get_qualified_name()] = self.get_escaped_projection_name(parsed.model, parsed)
            else:
                result[parsed] = parsed

            if not self.is_field_identifier(part):
                result[part] = part

        return result
