"""
ormsql connection façade — async reads, writes and DDL on top of a
dialect's query generator.

Usage:
    async with SQLiteConnection("app.db") as connection:
        await connection.create_table(User, {"if_not_exists": True})
        await connection.insert(User, [{"first_name": "Bob"}])

        async for user in connection.select(User.where().first_name.eq("Bob")):
            print(user.id)

        total = await connection.count(User)

A driver implements ``connect``, ``disconnect`` and ``query``; everything
else is generated SQL plus the result materializer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field as dc_field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence, Type, Union, TYPE_CHECKING

from ..config import ConnectionConfig
from ..faults import PrimaryKeyRequiredFault, QueryFault, UnsupportedOperationFault
from ..models.base import Model as ModelBase
from ..models.registry import ModelRegistry
from ..query.engine import QueryEngine
from ..query.literals import (
    AverageLiteral,
    CountLiteral,
    DistinctLiteral,
    LiteralBase,
    MaxLiteral,
    MinLiteral,
    SumLiteral,
)
from ..query.utils import parse_qualified_name
from ..sql.generator import SQLQueryGenerator
from .materializer import ModelDataMap, apply_write_results, build_model_graph, group_rows_by_model

if TYPE_CHECKING:
    from ..models.base import Model
    from ..models.fields import Field

logger = logging.getLogger("ormsql.connection")

__all__ = ["SQLConnectionBase", "QueryResult"]


@dataclass
class QueryResult:
    """Driver result: column names and row lists, or the affected-row count."""

    columns: List[str] = dc_field(default_factory=list)
    rows: List[List[Any]] = dc_field(default_factory=list)
    changes: int = 0


class SQLConnectionBase(ABC):
    """
    Abstract SQL connection.

    Parameters:
        config           – ConnectionConfig (defaults apply when omitted)
        query_generator  – generator instance; defaults to ``query_generator_class``
    """

    dialect = "generic"
    query_generator_class: Type[SQLQueryGenerator] = SQLQueryGenerator

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        query_generator: Optional[SQLQueryGenerator] = None,
    ):
        self.config = config or ConnectionConfig()
        self._query_generator = query_generator or self.query_generator_class(self, self.config)

    # ── Driver interface ─────────────────────────────────────────────

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def query(self, sql: str, **options: Any) -> QueryResult:
        """Run one statement and return its result."""

    async def __aenter__(self) -> SQLConnectionBase:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _log_sql(self, sql: str) -> None:
        level = logging.INFO if self.config.log_sql else logging.DEBUG
        logger.log(level, f"SQL: {sql}")

    # ── Helpers ──────────────────────────────────────────────────────

    def get_query_generator(self) -> SQLQueryGenerator:
        return self._query_generator

    def set_query_generator(self, query_generator: SQLQueryGenerator) -> None:
        self._query_generator = query_generator

    def escape(self, value: Any) -> str:
        return self._query_generator.escape(value)

    def escape_id(self, value: Any) -> str:
        return self._query_generator.escape_id(value)

    def prepare_array_values_for_sql(self, values: Any) -> List[Any]:
        return self._query_generator.prepare_array_values_for_sql(values)

    def get_model(self, name: str) -> Optional[Type[Model]]:
        return ModelRegistry.get(name)

    def get_field(self, name: str, model_name: Optional[str] = None) -> Optional[Field]:
        parsed_model_name, field_names = parse_qualified_name(name)
        Model = self.get_model(parsed_model_name or model_name or "")
        if Model is None or not field_names:
            return None
        return Model.get_field(field_names[0])

    def get_default_order(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None):
        return self._query_generator.get_default_order(Model, options)

    def query_result_rows_to_raw_data(self, result: Optional[QueryResult]) -> List[Dict[str, Any]]:
        if result is None or not result.columns or not result.rows:
            return []
        return [dict(zip(result.columns, row)) for row in result.rows]

    def _to_query(self, query_or_model: Any, operation: str) -> QueryEngine:
        if QueryEngine.is_query(query_or_model):
            return query_or_model
        if isinstance(query_or_model, type) and issubclass(query_or_model, ModelBase):
            return query_or_model.where(self)
        raise QueryFault("<unknown>", operation, "a model class or a query is required")

    def _qualify_field_name(self, field: Any, Model: Type[Model]) -> Optional[str]:
        if field is None:
            return None
        if LiteralBase.is_literal(field):
            return field
        if hasattr(field, "get_qualified_name"):
            return field.get_qualified_name()

        model_name, field_names = parse_qualified_name(field)
        if not field_names:
            raise QueryFault(Model.get_model_name(), "qualify", f"do not know how to map to field '{field}'")
        return f"{model_name or Model.get_model_name()}:{field_names[0]}"

    # ── Materializer wrappers ────────────────────────────────────────

    def build_model_data_map_from_select_results(self, query: QueryEngine, result: Optional[QueryResult]) -> ModelDataMap:
        return group_rows_by_model(query, result)

    def build_models_from_model_data_map(
        self,
        query: QueryEngine,
        data_map: ModelDataMap,
        on_each_model: Optional[Callable[[Type[Model], Model], Optional[Model]]] = None,
    ) -> List[Model]:
        return build_model_graph(query, data_map, on_each_model)

    def update_models_from_results(self, Model: Type[Model], models: Sequence[Model], result: Optional[QueryResult]) -> Sequence[Model]:
        return apply_write_results(Model, models, result)

    def get_update_or_delete_change_count(self, result: Optional[QueryResult]) -> int:
        if result is None:
            return 0
        if result.columns:
            return len(result.rows)
        return result.changes

    # ── DDL ──────────────────────────────────────────────────────────

    async def _run_statements(self, statements: Union[str, Sequence[str]]) -> None:
        if isinstance(statements, str):
            statements = [statements]
        for sql in statements:
            if sql:
                await self.query(sql)

    async def create_table(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> None:
        generator = self.get_query_generator()
        await self.query(generator.generate_create_table_statement(Model, options))
        await self._run_statements(generator.generate_create_table_statement_outer_tail(Model, options))

    async def drop_table(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> None:
        await self.query(self.get_query_generator().generate_drop_table_statement(Model, options))

    async def truncate(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> None:
        await self.query(self.get_query_generator().generate_truncate_table_statement(Model, options))

    async def alter_table(self, Model: Type[Model], new_attributes: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> None:
        await self._run_statements(self.get_query_generator().generate_alter_table_statement(Model, new_attributes, options))

    async def add_column(self, field: Field, options: Optional[Dict[str, Any]] = None) -> None:
        await self._run_statements(self.get_query_generator().generate_add_column_statement(field, options))

    async def drop_column(self, field: Field, options: Optional[Dict[str, Any]] = None) -> None:
        await self._run_statements(self.get_query_generator().generate_drop_column_statement(field, options))

    async def alter_column(self, field: Field, new_attributes: Any, options: Optional[Dict[str, Any]] = None) -> None:
        await self._run_statements(self.get_query_generator().generate_alter_column_statements(field, new_attributes, options))

    async def add_index(self, Model: Type[Model], field_names: Sequence[str], options: Optional[Dict[str, Any]] = None) -> None:
        await self._run_statements(self.get_query_generator().generate_create_index_statement(Model, field_names, options))

    async def drop_index(self, Model: Type[Model], field_names: Sequence[str], options: Optional[Dict[str, Any]] = None) -> None:
        await self._run_statements(self.get_query_generator().generate_drop_index_statement(Model, field_names, options))

    async def enable_foreign_key_constraints(self, enable: bool) -> None:
        raise UnsupportedOperationFault("enable_foreign_key_constraints", type(self).__name__)

    # ── Writes ───────────────────────────────────────────────────────

    async def _run_save_hooks(self, models: Sequence[Model], hook_names: Sequence[str], options: Dict[str, Any]) -> None:
        for model in models:
            for hook_name in hook_names:
                await getattr(model, hook_name)(self, options)

    def _group_by_dirty_fields(self, models: Sequence[Model]) -> List[List[Model]]:
        groups: Dict[tuple, List[Model]] = {}
        for model in models:
            signature = tuple(model.get_dirty_fields(insert=True).keys())
            groups.setdefault(signature, []).append(model)
        return list(groups.values())

    async def insert(self, Model: Type[Model], models: Any, options: Optional[Dict[str, Any]] = None) -> List[Model]:
        """
        Insert instances (or attribute dicts) of ``Model``.

        Already persisted instances are skipped. Returns the inserted
        instances with RETURNING values written back.
        """
        generator = self.get_query_generator()
        options = generator.stack_assign(options, {"skip_persisted": True, "is_insert_operation": True})

        prepared = generator.prepare_models_for_operation(Model, models, options)
        if not prepared.models:
            return []

        await self._run_save_hooks(prepared.models, ("on_before_create", "on_before_save"), options)

        pending = [model for model in prepared.models if model.get_dirty_fields(insert=True)]
        if generator.supports_default_in_values:
            groups = [pending] if pending else []
        else:
            groups = self._group_by_dirty_fields(pending)

        for group in groups:
            sql = generator.generate_insert_statement(Model, group, options)
            if not sql:
                continue

            result = await self.query(sql)
            self.update_models_from_results(Model, group, result)

        for model in prepared.models:
            model.clear_dirty()
            model.set_persisted(True)

        await self._run_save_hooks(prepared.models, ("on_after_create", "on_after_save"), options)

        # After-hooks may leave changes behind
        pk_name = Model.get_primary_key_field_name()
        for model in prepared.models:
            if not model.is_dirty() or pk_name is None:
                continue

            query = QueryEngine(Model, connection=self).field(pk_name).eq(model.get_primary_key_value())
            sql = generator.generate_update_statement(Model, model, query, {"is_update_operation": True})
            if not sql:
                continue

            result = await self.query(sql)
            self.update_models_from_results(Model, [model], result)
            model.clear_dirty()

        logger.debug(f"Inserted {len(prepared.models)} '{Model.get_model_name()}' models")
        return prepared.models

    async def upsert(self, Model: Type[Model], models: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        raise UnsupportedOperationFault("upsert", type(self).__name__)

    async def update(self, Model: Type[Model], models: Any, options: Optional[Dict[str, Any]] = None) -> int:
        """Issue one UPDATE per instance, keyed by primary key; returns the instance count."""
        pk_name = Model.get_primary_key_field_name()
        if pk_name is None:
            raise PrimaryKeyRequiredFault(Model.get_model_name(), "update")

        generator = self.get_query_generator()
        options = generator.stack_assign(options, {"is_update_operation": True})
        prepared = generator.prepare_models_for_operation(Model, models, options)
        if not prepared.models:
            return 0

        await self._run_save_hooks(prepared.models, ("on_before_update", "on_before_save"), options)

        for model in prepared.models:
            pk_value = model.get_primary_key_value()
            if pk_value is None or pk_value == "":
                raise PrimaryKeyRequiredFault(Model.get_model_name(), "update")

            query = QueryEngine(Model, connection=self).field(pk_name).eq(pk_value)
            sql = generator.generate_update_statement(Model, model, query, options)
            if not sql:
                continue

            result = await self.query(sql)
            self.update_models_from_results(Model, [model], result)
            model.clear_dirty()

        await self._run_save_hooks(prepared.models, ("on_after_update", "on_after_save"), options)
        return len(prepared.models)

    async def update_all(self, query: Any, attributes: Any, options: Optional[Dict[str, Any]] = None) -> int:
        query = self._to_query(query, "update_all")
        generator = self.get_query_generator()
        options = generator.stack_assign(options, {"is_update_operation": True})

        Model = query.get_operation_context().root_model
        sql = generator.generate_update_statement(Model, attributes, query, options)
        if not sql:
            return 0
        return self.get_update_or_delete_change_count(await self.query(sql))

    async def destroy_models(
        self,
        Model: Type[Model],
        models: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> int:
        options = options or {}
        generator = self.get_query_generator()

        if models is None:
            if options.get("truncate") is not True:
                return 0
            sql = generator.generate_delete_statement(Model, None, options)
            return self.get_update_or_delete_change_count(await self.query(sql))

        items = [item for item in (models if isinstance(models, (list, tuple)) else [models]) if item is not None]
        if not items:
            return 0

        if Model.get_primary_key_field_name() is None:
            raise PrimaryKeyRequiredFault(Model.get_model_name(), "destroy")

        sql = generator.generate_delete_statement(Model, items, options)
        if not sql:
            return 0
        return self.get_update_or_delete_change_count(await self.query(sql))

    async def destroy(
        self,
        query_or_model: Any,
        models: Any = None,
        *,
        truncate: bool = False,
        options: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Delete by query, or by ``(Model, models)``; returns the number of rows removed."""
        if isinstance(query_or_model, type) and issubclass(query_or_model, ModelBase):
            return await self.destroy_models(
                query_or_model,
                models,
                self.get_query_generator().stack_assign(options, {"truncate": truncate}),
            )

        query = self._to_query(query_or_model, "destroy")
        Model = query.get_operation_context().root_model
        sql = self.get_query_generator().generate_delete_statement(Model, query, options)
        return self.get_update_or_delete_change_count(await self.query(sql))

    # ── Reads ────────────────────────────────────────────────────────

    async def select(
        self,
        query_or_model: Any,
        batch_size: Optional[int] = None,
        raw: bool = False,
        options: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Any]:
        """
        Stream results page by page.

        Yields model instances (with related models attached), raw dict
        rows for grouped queries, or each page's QueryResult when ``raw``.
        """
        query = self._to_query(query_or_model, "select")
        generator = self.get_query_generator()
        context = query.get_operation_context()

        if context.group_by:
            result = await self.query(generator.generate_select_statement(query, options))
            for row in self.query_result_rows_to_raw_data(result):
                yield row
            return

        batch_size = batch_size or self.config.batch_size
        cursor = context.offset or 0
        remaining = context.limit

        while remaining is None or remaining > 0:
            page_size = batch_size if remaining is None else min(batch_size, remaining)
            page = query.clone().limit(page_size).offset(cursor)
            result = await self.query(generator.generate_select_statement(page, options))

            if not result.rows:
                break

            cursor += len(result.rows)
            if remaining is not None:
                remaining -= len(result.rows)

            if raw:
                yield result
            else:
                data_map = self.build_model_data_map_from_select_results(query, result)
                for model in self.build_models_from_model_data_map(query, data_map):
                    yield model

            if len(result.rows) < page_size:
                break

    async def aggregate(self, query: Any, literal: LiteralBase, options: Optional[Dict[str, Any]] = None) -> Any:
        if not LiteralBase.is_literal(literal):
            raise QueryFault("<unknown>", "aggregate", "the second argument must be a literal")

        query = self._to_query(query, "aggregate")
        generator = self.get_query_generator()

        distinct = query.get_operation_context().distinct
        if distinct is not None:
            distinct_field = distinct.get_field(self)
            if distinct_field is not None:
                literal = type(literal)(DistinctLiteral(distinct_field), **literal.options)
                query = query.distinct(False)

        literal_text = literal.to_string(generator)
        sql = generator.generate_select_statement(query.project(literal).order(), options)
        result = await self.query(sql)

        if literal_text in result.columns:
            column_index = result.columns.index(literal_text)
        elif len(result.columns) == 1:
            column_index = 0
        else:
            raise QueryFault(
                query.get_operation_context().root_model_name,
                "aggregate",
                "can not find the aggregate column in the results",
            )

        if not result.rows:
            return None
        return result.rows[0][column_index]

    async def count(self, query: Any, field: Any = None, options: Optional[Dict[str, Any]] = None) -> int:
        query = self._to_query(query, "count")
        Model = query.get_operation_context().root_model
        return await self.aggregate(query, CountLiteral(self._qualify_field_name(field, Model)), options)

    async def sum(self, query: Any, field: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        query = self._to_query(query, "sum")
        Model = query.get_operation_context().root_model
        return await self.aggregate(query, SumLiteral(self._qualify_field_name(field, Model)), options)

    async def average(self, query: Any, field: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        query = self._to_query(query, "average")
        Model = query.get_operation_context().root_model
        return await self.aggregate(query, AverageLiteral(self._qualify_field_name(field, Model)), options)

    async def min(self, query: Any, field: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        query = self._to_query(query, "min")
        Model = query.get_operation_context().root_model
        return await self.aggregate(query, MinLiteral(self._qualify_field_name(field, Model)), options)

    async def max(self, query: Any, field: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        query = self._to_query(query, "max")
        Model = query.get_operation_context().root_model
        return await self.aggregate(query, MaxLiteral(self._qualify_field_name(field, Model)), options)

    async def pluck(
        self,
        query: Any,
        fields: Any,
        map_to_objects: bool = False,
        options: Optional[Dict[str, Any]] = None,
    ) -> List[Any]:
        """
        Column values only.

        One field gives a flat list; several give one list (or dict with
        ``map_to_objects``) per row.
        """
        query = self._to_query(query, "pluck")
        Model = query.get_operation_context().root_model

        several = isinstance(fields, (list, tuple)) and len(fields) > 1
        items = [item for item in (fields if isinstance(fields, (list, tuple)) else [fields]) if item]
        if not items:
            raise QueryFault(Model.get_model_name(), "pluck", "fields are required")

        names = [self._qualify_field_name(item, Model) for item in items]
        sql = self.get_query_generator().generate_select_statement(query.project(*names), options)
        result = await self.query(sql)

        column_index = {name: (result.columns.index(name) if name in result.columns else -1) for name in names}

        def value_of(row: Sequence[Any], name: str) -> Any:
            index = column_index[name]
            return row[index] if index >= 0 else None

        if map_to_objects:
            rows: List[Any] = [{name: value_of(row, name) for name in names} for row in result.rows]
        else:
            rows = [[value_of(row, name) for name in names] for row in result.rows]

        if not several:
            if map_to_objects:
                return [row[names[0]] for row in rows]
            return [row[0] for row in rows]

        return rows

    async def exists(self, query: Any, options: Optional[Dict[str, Any]] = None) -> bool:
        return (await self.count(query, None, options) or 0) > 0
