"""
ormsql mutation generators — INSERT, UPDATE, DELETE and TRUNCATE.

    INSERT INTO "users" ("id","first_name") VALUES ('a','Bob'),('b','Ann')
    UPDATE "users" SET "first_name" = 'Bob' WHERE "users"."id" = 'a'
    DELETE FROM "users" WHERE "users"."first_name" = 'Bob'
    DELETE FROM "users" AS "_users" WHERE EXISTS (SELECT 1 FROM ...)

Dialects append a RETURNING tail through the ``generate_*_statement_tail``
hooks; the base generator adds none for INSERT and UPDATE.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Optional, Sequence, Type, Union, TYPE_CHECKING

from ..faults import PrimaryKeyRequiredFault
from ..models.base import DirtyState, Model as ModelBase
from ..models.defaults import DefaultValue, check_default_value_flags
from ..models.fields import Field, UNSET
from ..query.engine import QueryEngine
from ..query.literals import Literal, LiteralBase

if TYPE_CHECKING:
    from ..models.base import Model

logger = logging.getLogger("ormsql.sql.generator")

__all__ = ["MutationMixin", "PreparedModels"]


@dataclass
class PreparedModels:
    """Instances ready for a write plus the union of their dirty fields."""

    models: List[ModelBase] = dc_field(default_factory=list)
    dirty_fields: List[Field] = dc_field(default_factory=list)


class MutationMixin:
    """Write statement generation for ``SQLQueryGenerator``."""

    # RETURNING goes between WHERE and ORDER BY/LIMIT in UPDATE statements
    update_returning_before_order = False

    # ── Defaults ─────────────────────────────────────────────────────

    def get_field_default_value(
        self,
        field: Field,
        field_name: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Render ``field``'s default for SQL.

        Options:
            remote_only          – only database-supplied literal defaults
            use_default_keyword  – prefix with ``DEFAULT`` (default True)
            escape               – escape the value (default True)
            raw_literals         – return literal defaults unrendered
        """
        options = options or {}
        default = field.default

        if default is UNSET:
            return None

        if options.get("is_update_operation") and not check_default_value_flags(default, ["on_update"]):
            return None

        if options.get("is_insert_operation") and not check_default_value_flags(default, ["on_insert"]):
            return None

        use_default_keyword = options.get("use_default_keyword", True)
        escape_value = options.get("escape", True)

        if callable(default):
            context = {
                "field": field,
                "field_name": field_name or field.field_name,
                "model": None,
                "connection": self.connection,
                "static": True,
            }

            if not options.get("remote_only"):
                default = default(context) if isinstance(default, DefaultValue) else default()
            elif check_default_value_flags(default, ["literal", "remote"]):
                default = default(context)
                escape_value = False
            else:
                return None

        if LiteralBase.is_literal(default):
            if default.options.get("escape") is False:
                escape_value = False

            use_default_keyword = not default.options.get("no_default_statement")
            if options.get("is_insert_operation") or options.get("is_update_operation"):
                use_default_keyword = False

            if options.get("raw_literals"):
                return default

            default = default.to_string(self)

        if escape_value:
            default = self.escape(default)

        return f"DEFAULT {default}" if use_default_keyword else str(default)

    # ── Model preparation ────────────────────────────────────────────

    def prepare_models_for_operation(
        self,
        Model: Type[Model],
        models: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> PreparedModels:
        """Coerce dicts to instances and collect the batch's dirty fields."""
        if isinstance(models, PreparedModels):
            return models

        options = options or {}
        if models is None:
            items: Sequence[Any] = []
        elif isinstance(models, (list, tuple)):
            items = models
        else:
            items = [models]

        instances: List[ModelBase] = []
        for item in items:
            if item is None:
                continue
            if not isinstance(item, ModelBase):
                item = Model(item)
            if options.get("skip_persisted") and item.is_persisted():
                continue
            instances.append(item)

        insert = bool(options.get("is_insert_operation"))
        update = bool(options.get("is_update_operation"))

        dirty_names = set()
        for instance in instances:
            dirty_names.update(instance.get_dirty_fields(insert=insert, update=update).keys())

        dirty_fields = [
            field
            for field in Model.iterate_fields()
            if field.field_name in dirty_names and not field.type.is_virtual()
        ]
        return PreparedModels(instances, dirty_fields)

    # ── INSERT ───────────────────────────────────────────────────────

    def blank_insert_value(self) -> str:
        """Token for a column that one row of a batch leaves unset."""
        return ""

    def _render_write_value(self, value: Any) -> str:
        if LiteralBase.is_literal(value):
            return value.to_string(self)
        return self.escape(value)

    def generate_insert_field_values_from_model(
        self,
        model: ModelBase,
        dirty_fields: Sequence[Field],
        options: Optional[Dict[str, Any]] = None,
    ) -> Optional[tuple]:
        """``(changes, "v1,v2")`` for one row, or None when nothing is dirty."""
        changes = model.get_dirty_fields(insert=True)
        if not changes:
            return None

        values: List[str] = []
        for field in dirty_fields:
            state = changes.get(field.field_name)
            if state is None:
                values.append(self.blank_insert_value())
                continue
            values.append(self._render_write_value(state.current))

        return changes, ",".join(values)

    def generate_insert_values_from_models(
        self,
        Model: Type[Model],
        prepared: PreparedModels,
        options: Optional[Dict[str, Any]] = None,
    ) -> Optional[tuple]:
        options = options or {}
        model_changes: List[Dict[str, DirtyState]] = []
        rows: List[str] = []

        for model in prepared.models:
            result = self.generate_insert_field_values_from_model(model, prepared.dirty_fields, options)
            if result is None:
                continue

            changes, values = result
            model_changes.append(changes)
            rows.append(f"({values})")

        if not rows:
            return None

        separator = ",\n" if self._use_newlines(options) else ","
        return model_changes, separator.join(rows)

    def generate_insert_statement_tail(
        self,
        Model: Type[Model],
        models: Sequence[ModelBase],
        options: Dict[str, Any],
        context: Dict[str, Any],
    ) -> str:
        return ""

    def generate_insert_statement(
        self,
        Model: Type[Model],
        models: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = self.stack_assign(options, {"is_insert_operation": True})
        prepared = self.prepare_models_for_operation(Model, models, options)
        if not prepared.models or not prepared.dirty_fields:
            return ""

        sub_options = self.stack_assign(
            options,
            {
                "as_column": True,
                "column_name_only": True,
                "fields": [field.field_name for field in prepared.dirty_fields],
            },
        )

        result = self.generate_insert_values_from_models(Model, prepared, sub_options)
        if result is None:
            return ""

        model_changes, values = result
        escaped_table_name = self.get_escaped_table_name(Model, sub_options)
        escaped_columns = ",".join(self.get_escaped_model_fields(Model, sub_options).values())

        tail = self.generate_insert_statement_tail(
            Model,
            prepared.models,
            sub_options,
            {
                "escaped_table_name": escaped_table_name,
                "model_changes": model_changes,
                "dirty_fields": prepared.dirty_fields,
            },
        )

        sql = f"INSERT INTO {escaped_table_name} ({escaped_columns}) VALUES {values}"
        return f"{sql} {tail}" if tail else sql

    # ── UPDATE ───────────────────────────────────────────────────────

    def generate_update_statement_tail(
        self,
        Model: Type[Model],
        model: ModelBase,
        options: Dict[str, Any],
        context: Dict[str, Any],
    ) -> str:
        return ""

    def generate_update_statement(
        self,
        Model: Type[Model],
        model: Union[ModelBase, Dict[str, Any], None],
        query: Optional[QueryEngine] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        if not model:
            return ""

        if query is not None and not QueryEngine.is_query(query) and options is None:
            options, query = query, None

        options = self.stack_assign(options, {"is_update_operation": True})

        if not isinstance(model, ModelBase):
            attributes = model
            model = Model()
            model.clear_dirty()
            model.set_attributes(attributes)

        changes = model.get_dirty_fields(update=True)
        dirty_fields = Model.get_fields(changes.keys())
        if not dirty_fields:
            return ""

        newlines = self._use_newlines(options)
        indent = "  " if newlines else ""

        assignments: List[str] = []
        for field in dirty_fields:
            rendered = self._render_write_value(changes[field.field_name].current)
            if not rendered:
                continue

            column = self.get_escaped_column_name(Model, field, {"column_name_only": True})
            assignments.append(f"{indent}{column} = {rendered}")

        if not assignments:
            return ""

        escaped_table_name = self.get_escaped_table_name(Model, options)
        sql = f"UPDATE {escaped_table_name} SET "
        sql += ("\n" + ",\n".join(assignments)) if newlines else ",".join(assignments)

        where = ""
        order_limit_offset = ""
        if query is not None:
            where, order_limit_offset = self.generate_where_and_order_limit_offset_parts(
                query,
                self.stack_assign(options, {"order_clause_only_if_limited": True}),
            )

        tail = self.generate_update_statement_tail(
            Model,
            model,
            options,
            {
                "escaped_table_name": escaped_table_name,
                "model_changes": [changes],
                "dirty_fields": dirty_fields,
                "where": " ".join(part for part in (where, order_limit_offset) if part),
            },
        )

        if self.update_returning_before_order:
            clauses = [where, tail, order_limit_offset]
        else:
            clauses = [where, order_limit_offset, tail]
        clauses = [clause for clause in clauses if clause]
        if not clauses:
            return sql

        if where:
            return sql + ("\n" if newlines else " ") + " ".join(clauses)
        return f"{sql} {' '.join(clauses)}"

    # ── DELETE ───────────────────────────────────────────────────────

    def _build_query_from_models(self, Model: Type[Model], models: Any) -> Optional[QueryEngine]:
        pk_field = Model.get_primary_key_field()
        if pk_field is None:
            raise PrimaryKeyRequiredFault(Model.get_model_name(), "delete")

        items = models if isinstance(models, (list, tuple)) else [models]
        ids = []
        for item in items:
            if isinstance(item, ModelBase):
                value = item.get_primary_key_value()
            elif isinstance(item, dict):
                value = item.get(pk_field.field_name)
            else:
                value = item

            if value is None or value == "":
                continue
            ids.append(value)

        if not ids:
            return None

        return QueryEngine(Model, connection=self.connection).field(pk_field).eq(ids)

    def generate_delete_statement_returning_clause(
        self,
        Model: Type[Model],
        query: Optional[QueryEngine],
        pk_field: Optional[Field],
        escaped_column: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        if not escaped_column:
            return ""
        return f"RETURNING {escaped_column}"

    def generate_delete_statement(
        self,
        Model: Type[Model],
        query: Any = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        DELETE rows matched by ``query``.

        ``query`` may also be a model instance, a dict or a list of them;
        rows are then matched by primary key. A query with table joins is
        rewritten into a correlated ``WHERE EXISTS`` sub-query.
        """
        options = self.stack_assign(options, {"is_delete_operation": True})

        if query is not None and not QueryEngine.is_query(query):
            query = self._build_query_from_models(Model, query)
            if query is None:
                return ""

        escaped_table_name = self.get_escaped_table_name(Model, options)
        if query is None or not query.query_has_conditions():
            return f"DELETE FROM {escaped_table_name}"

        pk_field = Model.get_primary_key_field()

        if query.query_has_joins():
            if pk_field is None:
                raise PrimaryKeyRequiredFault(Model.get_model_name(), "delete with table joins")

            alias = self.get_escaped_table_name(Model, {"table_name_prefix": "_"})
            escaped_pk = self.get_escaped_column_name(Model, pk_field, {"column_name_only": True})

            inner_query = (
                query.and_()
                .field(pk_field)
                .eq(Literal(f"{alias}.{escaped_pk}"))
                .project(Literal("1"))
                .limit(1)
                .offset(0)
            )
            inner = self.generate_select_statement(
                inner_query,
                self.stack_assign(
                    options,
                    {
                        "is_sub_query": True,
                        "sub_query_operator": "EXISTS",
                        "no_projection_aliases": True,
                        "force_limit": self.force_limit,
                    },
                ),
            )

            logger.debug(f"Rewrote joined delete on '{Model.get_model_name()}' to correlated EXISTS")

            returning = self.generate_delete_statement_returning_clause(
                Model, query, pk_field, f"{alias}.{escaped_pk}", options
            )
            sql = f"DELETE FROM {escaped_table_name} AS {alias} WHERE EXISTS ({inner})"
            return f"{sql} {returning}" if returning else sql

        escaped_column = (
            self.get_escaped_column_name(Model, pk_field, {"column_name_only": True}) if pk_field is not None else "*"
        )
        returning = self.generate_delete_statement_returning_clause(Model, query, pk_field, escaped_column, options)

        where, order_limit_offset = self.generate_where_and_order_limit_offset_parts(
            query,
            self.stack_assign(options, {"force_limit": self.force_limit}),
        )

        parts = [f"DELETE FROM {escaped_table_name}", where, returning, order_limit_offset]
        return " ".join(part for part in parts if part)

    # ── RETURNING ────────────────────────────────────────────────────

    def _collect_remote_returning_fields(self, Model: Type[Model]) -> List[str]:
        columns = []
        for field in Model.iterate_fields():
            if field.type.is_virtual():
                continue
            if isinstance(field.default, DefaultValue) and field.default.flags["remote"]:
                columns.append(self.get_escaped_column_name(Model, field, {"column_name_only": True}))
        return columns

    def _collect_returning_fields(
        self,
        Model: Type[Model],
        models: Any,
        options: Dict[str, Any],
        context: Dict[str, Any],
    ) -> str:
        columns: List[str] = []

        def add(column: str) -> None:
            if column not in columns:
                columns.append(column)

        pk_field = Model.get_primary_key_field()
        if pk_field is not None:
            add(self.get_escaped_column_name(Model, pk_field, {"column_name_only": True}))

        for field in context.get("dirty_fields") or []:
            for changes in context.get("model_changes") or []:
                state = changes.get(field.field_name)
                if state is None:
                    continue
                if LiteralBase.is_literal(state.current) and state.current.options.get("remote"):
                    add(self.get_escaped_column_name(Model, field, {"column_name_only": True}))
                    break

        for column in self._collect_remote_returning_fields(Model):
            add(column)

        if not columns:
            return ""
        return f"RETURNING {','.join(columns)}"

    # ── TRUNCATE ─────────────────────────────────────────────────────

    def generate_truncate_table_statement(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> str:
        return f"TRUNCATE TABLE {self.get_escaped_table_name(Model, options)}"
