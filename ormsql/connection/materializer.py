"""
ormsql result materializer — flat result rows to a graph of model instances.

Result columns are aliased ``"Model:field"``. Each row is split into one
attribute dict per projected model; identical models (same primary key,
or same values when there is none) share a slot in that model's arena.
Relations are kept in a side table keyed by the root row's arena index:

    ModelDataMap(
        models={"User": [{...}, {...}], "Role": [{...}]},
        relations={0: {"Role": [0]}, 1: {"Role": [0]}},
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, TYPE_CHECKING

from ..faults import QueryFault
from ..models.registry import ModelRegistry
from ..query.utils import parse_qualified_name

if TYPE_CHECKING:
    from ..models.base import Model
    from ..models.fields import Field
    from ..query.engine import QueryEngine
    from .base import QueryResult

logger = logging.getLogger("ormsql.connection.materializer")

__all__ = [
    "ModelDataMap",
    "group_rows_by_model",
    "build_model_graph",
    "apply_write_results",
]


@dataclass
class ModelDataMap:
    """Per-model attribute arenas plus the root → related index side table."""

    root_model_name: str
    models: Dict[str, List[Dict[str, Any]]] = dc_field(default_factory=dict)
    relations: Dict[int, Dict[str, List[int]]] = dc_field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.models


def _identity_key(Model: Type[Model], model_name: str, attributes: Dict[str, Any]) -> str:
    pk_name = Model.get_primary_key_field_name()
    pk_value = attributes.get(pk_name) if pk_name else None

    if pk_value is None:
        pk_value = ",".join(f"{key}:{attributes[key]}" for key in sorted(attributes))

    return f"{model_name}:{pk_name or ''}:{pk_value}"


def _resolve_columns(columns: Sequence[str]) -> List[Tuple[int, str, Field]]:
    resolved = []
    for index, column in enumerate(columns):
        model_name, field_names = parse_qualified_name(column)
        if not model_name or not field_names:
            continue

        Model = ModelRegistry.get(model_name)
        if Model is None:
            continue

        field = Model.get_field(field_names[0])
        if field is None:
            continue

        resolved.append((index, model_name, field))
    return resolved


def group_rows_by_model(query: QueryEngine, result: Optional[QueryResult]) -> ModelDataMap:
    """Split ``result`` rows into per-model arenas, deduplicating by identity."""
    root_model_name = query.get_operation_context().root_model_name
    data_map = ModelDataMap(root_model_name=root_model_name)

    if result is None or not result.rows:
        return data_map

    columns = _resolve_columns(result.columns)
    model_names = sorted(
        {model_name for _, model_name, _ in columns},
        key=lambda name: (name != root_model_name, name),
    )

    visited: Dict[str, int] = {}

    for row in result.rows:
        root_index: Optional[int] = None

        for model_name in model_names:
            attributes = {
                field.field_name: row[index]
                for index, column_model_name, field in columns
                if column_model_name == model_name
            }

            # Empty side of an outer join
            if all(value is None for value in attributes.values()):
                continue

            Model = ModelRegistry.get(model_name)
            key = _identity_key(Model, model_name, attributes)
            arena = data_map.models.setdefault(model_name, [])

            index = visited.get(key)
            if index is None:
                index = visited[key] = len(arena)
                arena.append(attributes)

            if model_name == root_model_name:
                root_index = index
                continue

            if root_index is None:
                continue

            related = data_map.relations.setdefault(root_index, {}).setdefault(model_name, [])
            if index not in related:
                related.append(index)

    logger.debug(
        f"Grouped {len(result.rows)} rows into "
        + ", ".join(f"{name}={len(items)}" for name, items in data_map.models.items())
    )
    return data_map


def build_model_graph(
    query: QueryEngine,
    data_map: ModelDataMap,
    on_each_model: Optional[Callable[[Type[Model], Model], Optional[Model]]] = None,
) -> List[Model]:
    """
    Instantiate the root models of ``data_map`` with their related models attached.

    ``on_each_model(Model, instance)`` is called for every instance and may
    return a replacement.
    """
    context = query.get_operation_context()
    if context.root_model is None:
        raise QueryFault("<unknown>", "build_model_graph", "root model not found")

    if data_map.is_empty():
        return []

    instances: Dict[str, List[Model]] = {}
    for model_name, arena in data_map.models.items():
        Model = ModelRegistry.get(model_name)
        built = []
        for attributes in arena:
            instance = Model.from_database(attributes)
            if on_each_model is not None:
                replacement = on_each_model(Model, instance)
                if replacement is not None:
                    instance = replacement
            built.append(instance)
        instances[model_name] = built

    roots = instances.get(context.root_model_name, [])

    for root_index, relations in data_map.relations.items():
        root = roots[root_index]
        related = [
            instances[model_name][index]
            for model_name in sorted(relations)
            for index in relations[model_name]
        ]
        root.assign_related_models(related)
        for instance in related:
            instance.clear_dirty()

    for root in roots:
        root.clear_dirty()

    return roots


def apply_write_results(Model: Type[Model], models: Sequence[Model], result: Optional[QueryResult]) -> Sequence[Model]:
    """Copy RETURNING values onto ``models`` (row i → model i) and mark them persisted."""
    if result is None or not result.columns:
        return models

    fields = [Model.get_field_by_column(column) or Model.get_field(column) for column in result.columns]

    for model, row in zip(models, result.rows):
        for field, value in zip(fields, row):
            if field is not None:
                model._set_value(field.field_name, value)
        model.set_persisted(True)

    return models
