"""
ormsql Query Engine — chainable, immutable query description.

Every chain method returns a NEW engine; nothing is executed here. The
engine records an operation stack (condition and group frames) plus a
frozen ``OperationContext`` summary that the SQL generator consumes.

Usage:
    query = (
        User.where()
            .first_name.eq("Bob")
            .or_().last_name.like("%son")
            .primary_role_id.eq(Role.where().id)      # join
            .order("-User:last_name")
            .limit(10)
    )

    # Navigation sugar: a capitalised attribute switches model,
    # anything else selects a field on the current model.
    query = User.where().Role.name.eq("admin")
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, Union, TYPE_CHECKING

from ..faults import FieldNotFoundFault, ModelNotFoundFault, QueryFault
from .literals import LiteralBase, DistinctLiteral
from .utils import parse_qualified_name

if TYPE_CHECKING:
    from ..models.base import Model
    from ..models.fields import Field
    from .tree import ConditionTree

__all__ = [
    "QueryEngine",
    "ConditionFrame",
    "GroupFrame",
    "OperationContext",
    "ProjectionEntry",
    "INVERSE_OPERATORS",
]


INVERSE_OPERATORS: Dict[str, str] = {
    "EQ": "NEQ",
    "NEQ": "EQ",
    "GT": "LTE",
    "LTE": "GT",
    "GTE": "LT",
    "LT": "GTE",
    "LIKE": "NOT_LIKE",
    "NOT_LIKE": "LIKE",
    "EXISTS": "NOT EXISTS",
    "NOT EXISTS": "EXISTS",
}

JOIN_TYPES = ("inner", "left", "right", "full", "cross")


# ── Frames ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProjectionEntry:
    """Projected, ordered or grouped item; ``direction`` is ``+``/``-`` for order entries."""

    value: Any
    direction: Optional[str] = None


@dataclass(frozen=True)
class ConditionFrame:
    """One comparison: ``<model>.<field> <operator> <value>``."""

    model_name: Optional[str]
    field_name: Optional[str]
    operator: Any
    value: Any
    connector: str = "AND"
    join_type: Optional[str] = None
    join_outer: bool = False
    quantifier: Optional[str] = None

    @property
    def and_(self) -> bool:
        return self.connector == "AND"

    @property
    def or_(self) -> bool:
        return self.connector == "OR"

    @property
    def Model(self) -> Optional[Type[Model]]:
        if not self.model_name:
            return None
        from ..models.registry import ModelRegistry
        return ModelRegistry.get(self.model_name)

    @property
    def Field(self) -> Optional[Field]:
        Model = self.Model
        if Model is None or not self.field_name:
            return None
        return Model.get_field(self.field_name)

    def is_join(self) -> bool:
        return QueryEngine.is_query(self.value) and not self.value.query_has_conditions()


@dataclass(frozen=True)
class GroupFrame:
    """Parenthesised sub-group of conditions joined with ``connector``."""

    connector: str
    query: QueryEngine

    @property
    def and_(self) -> bool:
        return self.connector == "AND"

    @property
    def or_(self) -> bool:
        return self.connector == "OR"


Frame = Union[ConditionFrame, GroupFrame]


@dataclass(frozen=True)
class OperationContext:
    """
    Summary of a query at one point of its chain.

    ``order`` is None until ordering is set explicitly (the generator then
    falls back to the model's default ordering); an empty mapping means
    "explicitly unordered". ``model``/``field`` are the navigation cursor.
    """

    root_model: Type[Model]
    root_model_name: str
    model: Optional[Type[Model]] = None
    field: Optional[Field] = None
    projection: Dict[str, ProjectionEntry] = dc_field(default_factory=dict)
    order: Optional[Dict[str, ProjectionEntry]] = None
    group_by: Dict[str, ProjectionEntry] = dc_field(default_factory=dict)
    having: Optional[QueryEngine] = None
    distinct: Optional[LiteralBase] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    condition: bool = False
    connector: str = "AND"
    negate: bool = False
    join_type: Optional[str] = None
    join_outer: bool = False

    @property
    def model_name(self) -> Optional[str]:
        return self.model.get_model_name() if self.model is not None else None


def literal_key(literal: LiteralBase) -> str:
    """Stable map key for a literal used in a projection, order or group-by."""
    if literal.kind == "raw":
        return str(literal.value)
    return repr(literal)


# ── Query Engine ─────────────────────────────────────────────────────────────


class QueryEngine:
    """
    Immutable query description rooted at one model.

    Parameters:
        model       – root Model class (or registered model name)
        connection  – optional connection the query is bound to
    """

    def __init__(self, model: Union[Type[Model], str], connection: Any = None):
        Model = _resolve_model(model)
        self.connection = connection
        self._stack: Tuple[Frame, ...] = ()
        self._context = OperationContext(
            root_model=Model,
            root_model_name=Model.get_model_name(),
            model=Model,
            projection=_model_projection(Model),
        )
        self._tree: Optional[ConditionTree] = None

    @staticmethod
    def is_query(value: Any) -> bool:
        return isinstance(value, QueryEngine)

    def _clone(self, **changes: Any) -> QueryEngine:
        """Create an immutable copy with context ``changes`` applied."""
        new = QueryEngine.__new__(QueryEngine)
        new.connection = self.connection
        new._stack = self._stack
        new._context = dataclasses.replace(self._context, **changes) if changes else self._context
        new._tree = None
        return new

    def clone(self) -> QueryEngine:
        return self._clone()

    def __repr__(self) -> str:
        return f"<QueryEngine root={self._context.root_model_name} frames={len(self._stack)}>"

    # ── Navigation ───────────────────────────────────────────────────

    def model(self, model: Union[Type[Model], str]) -> QueryEngine:
        """Switch the cursor to ``model`` (for conditions on joined tables)."""
        return self._clone(model=_resolve_model(model), field=None)

    def field(self, name: Union[str, Field]) -> QueryEngine:
        """Select the field the next condition applies to."""
        from ..models.fields import Field

        if isinstance(name, Field):
            return self._clone(model=name.model, field=name)

        model_name, field_names = parse_qualified_name(name)
        Model = _resolve_model(model_name) if model_name else self._context.model
        if not field_names:
            raise FieldNotFoundFault(Model.get_model_name(), name)

        found = Model.get_field(field_names[0])
        if found is None:
            raise FieldNotFoundFault(Model.get_model_name(), field_names[0])

        return self._clone(model=Model, field=found)

    def __getattr__(self, name: str) -> QueryEngine:
        if name.startswith("_"):
            raise AttributeError(name)

        from ..models.registry import ModelRegistry

        if name[:1].isupper() and ModelRegistry.get(name) is not None:
            return self.model(name)

        Model = self._context.model
        if Model is not None and Model.get_field(name) is not None:
            return self.field(name)

        raise AttributeError(
            f"'{type(self).__name__}' has no attribute '{name}' "
            f"(and '{name}' is neither a model nor a field of the current model)"
        )

    # ── Connectors ───────────────────────────────────────────────────

    def and_(self, query: Optional[QueryEngine] = None) -> QueryEngine:
        if query is not None:
            return self._push_group("AND", query)
        return self._clone(connector="AND")

    def or_(self, query: Optional[QueryEngine] = None) -> QueryEngine:
        if query is not None:
            return self._push_group("OR", query)
        return self._clone(connector="OR")

    def not_(self) -> QueryEngine:
        """Invert the operator of the next condition."""
        return self._clone(negate=not self._context.negate)

    def _push_group(self, connector: str, query: QueryEngine) -> QueryEngine:
        if not self.is_query(query):
            raise QueryFault(self._context.root_model_name, connector, "a group requires a query")

        new = self._clone(connector="AND", condition=True)
        new._stack = self._stack + (GroupFrame(connector, query),)
        return new

    # ── Joins ────────────────────────────────────────────────────────

    def inner_join(self) -> QueryEngine:
        return self._clone(join_type="inner", join_outer=False)

    def left_join(self, outer: bool = False) -> QueryEngine:
        return self._clone(join_type="left", join_outer=outer)

    def right_join(self, outer: bool = False) -> QueryEngine:
        return self._clone(join_type="right", join_outer=outer)

    def full_join(self, outer: bool = False) -> QueryEngine:
        return self._clone(join_type="full", join_outer=outer)

    def cross_join(self) -> QueryEngine:
        return self._clone(join_type="cross", join_outer=False)

    # ── Conditions ───────────────────────────────────────────────────

    def eq(self, value: Any, quantifier: Optional[str] = None) -> QueryEngine:
        return self._push_condition("EQ", value, quantifier)

    def neq(self, value: Any, quantifier: Optional[str] = None) -> QueryEngine:
        return self._push_condition("NEQ", value, quantifier)

    def gt(self, value: Any, quantifier: Optional[str] = None) -> QueryEngine:
        return self._push_condition("GT", value, quantifier)

    def gte(self, value: Any, quantifier: Optional[str] = None) -> QueryEngine:
        return self._push_condition("GTE", value, quantifier)

    def lt(self, value: Any, quantifier: Optional[str] = None) -> QueryEngine:
        return self._push_condition("LT", value, quantifier)

    def lte(self, value: Any, quantifier: Optional[str] = None) -> QueryEngine:
        return self._push_condition("LTE", value, quantifier)

    def like(self, value: Any) -> QueryEngine:
        return self._push_condition("LIKE", value, None)

    def not_like(self, value: Any) -> QueryEngine:
        return self._push_condition("NOT_LIKE", value, None)

    def exists(self, query: QueryEngine) -> QueryEngine:
        return self._push_condition("EXISTS", query, None, require_field=False)

    def not_exists(self, query: QueryEngine) -> QueryEngine:
        return self._push_condition("NOT EXISTS", query, None, require_field=False)

    def _push_condition(
        self,
        operator: str,
        value: Any,
        quantifier: Optional[str],
        *,
        require_field: bool = True,
    ) -> QueryEngine:
        from ..models.fields import Field

        ctx = self._context
        if require_field and ctx.field is None:
            raise QueryFault(ctx.root_model_name, operator, "no field selected for condition")

        if quantifier is not None:
            quantifier = quantifier.upper()
            if quantifier not in ("ANY", "ALL"):
                raise QueryFault(ctx.root_model_name, operator, f"unknown quantifier '{quantifier}'")

        if operator in ("EXISTS", "NOT EXISTS") and not self.is_query(value):
            raise QueryFault(ctx.root_model_name, operator, "EXISTS requires a query")

        # A Field value is shorthand for a join against that field
        if isinstance(value, Field):
            value = QueryEngine(value.model, connection=self.connection).field(value)

        if ctx.negate:
            operator = INVERSE_OPERATORS[operator]

        frame = ConditionFrame(
            model_name=ctx.model_name,
            field_name=ctx.field.field_name if ctx.field is not None else None,
            operator=operator,
            value=value,
            connector=ctx.connector,
            join_type=ctx.join_type,
            join_outer=ctx.join_outer,
            quantifier=quantifier,
        )

        new = self._clone(connector="AND", negate=False, condition=True)
        new._stack = self._stack + (frame,)
        return new

    # ── Shaping ──────────────────────────────────────────────────────

    def project(self, *items: Any) -> QueryEngine:
        """
        Set the projection.

        Items prefixed with ``+``/``-`` add to or remove from the current
        projection; any unprefixed item replaces it.
        """
        flat = _flatten(items)
        replace = any(not (isinstance(item, str) and item[:1] in "+-") for item in flat)
        projection: Dict[str, ProjectionEntry] = {} if replace else dict(self._context.projection)

        for item in flat:
            remove = False
            if isinstance(item, str) and item[:1] in "+-":
                remove = item[0] == "-"
                item = item[1:]

            for key, value in self._resolve_items(item):
                if remove:
                    projection.pop(key, None)
                else:
                    projection[key] = ProjectionEntry(value)

        return self._clone(projection=projection)

    def order(self, *items: Any) -> QueryEngine:
        """Set ordering (``-`` prefix for DESC); no arguments clears it."""
        order: Dict[str, ProjectionEntry] = {}

        for item in _flatten(items):
            direction = "+"
            if isinstance(item, str) and item[:1] in "+-":
                direction = item[0]
                item = item[1:]

            for key, value in self._resolve_items(item):
                order[key] = ProjectionEntry(value, direction)

        return self._clone(order=order)

    def group_by(self, *items: Any) -> QueryEngine:
        group_by: Dict[str, ProjectionEntry] = {}
        for item in _flatten(items):
            for key, value in self._resolve_items(item):
                group_by[key] = ProjectionEntry(value)
        return self._clone(group_by=group_by)

    def having(self, query: Optional[QueryEngine]) -> QueryEngine:
        if query is not None and not self.is_query(query):
            raise QueryFault(self._context.root_model_name, "having", "HAVING requires a query")
        return self._clone(having=query)

    def distinct(self, value: Any = True) -> QueryEngine:
        """
        DISTINCT (``True``/``None``), DISTINCT ON a field (``Field`` or
        ``"Model:field"``), a literal, or ``False`` to clear.
        """
        if value is False:
            return self._clone(distinct=None)

        if value is True or value is None:
            return self._clone(distinct=DistinctLiteral())

        if isinstance(value, DistinctLiteral):
            return self._clone(distinct=value)

        if LiteralBase.is_literal(value):
            return self._clone(distinct=DistinctLiteral(value))

        resolved = self._resolve_items(value)
        if len(resolved) != 1:
            raise QueryFault(self._context.root_model_name, "distinct", "DISTINCT accepts a single field")
        return self._clone(distinct=DistinctLiteral(resolved[0][1]))

    def limit(self, value: Optional[int]) -> QueryEngine:
        return self._clone(limit=value)

    def offset(self, value: Optional[int]) -> QueryEngine:
        return self._clone(offset=value)

    def _resolve_items(self, item: Any) -> List[Tuple[str, Any]]:
        """Expand one projection/order item into ``(key, value)`` pairs."""
        from ..models.base import Model as ModelBase
        from ..models.fields import Field

        if LiteralBase.is_literal(item):
            return [(literal_key(item), item)]

        if isinstance(item, Field):
            return [(item.get_qualified_name(), item)]

        if isinstance(item, type) and issubclass(item, ModelBase):
            return [(key, entry.value) for key, entry in _model_projection(item).items()]

        if not isinstance(item, str):
            raise QueryFault(self._context.root_model_name, "project", f"can not project {item!r}")

        if item == "*":
            pairs: List[Tuple[str, Any]] = []
            for Model in self.get_all_models_used_in_query():
                pairs.extend((key, entry.value) for key, entry in _model_projection(Model).items())
            return pairs

        model_name, field_names = parse_qualified_name(item)
        Model = _resolve_model(model_name) if model_name else self._context.root_model
        if not field_names:
            return [(key, entry.value) for key, entry in _model_projection(Model).items()]

        found = Model.get_field(field_names[0])
        if found is None:
            raise FieldNotFoundFault(Model.get_model_name(), field_names[0])
        return [(found.get_qualified_name(), found)]

    # ── Introspection ────────────────────────────────────────────────

    def get_operation_stack(self) -> Tuple[Frame, ...]:
        return self._stack

    def get_operation_context(self) -> OperationContext:
        return self._context

    def get_condition_tree(self) -> ConditionTree:
        """Pre-parsed condition tree (built once per engine)."""
        if self._tree is None:
            from .tree import ConditionTree
            self._tree = ConditionTree.from_query(self)
        return self._tree

    def query_has_conditions(self) -> bool:
        return self._context.condition

    def query_has_joins(self) -> bool:
        return any(
            isinstance(frame, ConditionFrame) and frame.is_join()
            for frame in self._stack
        )

    def get_all_models_used_in_query(self) -> List[Type[Model]]:
        """Root model first, then every model referenced by conditions or joins."""
        models: List[Type[Model]] = [self._context.root_model]

        def add(Model: Optional[Type[Model]]) -> None:
            if Model is not None and Model not in models:
                models.append(Model)

        for frame in self._stack:
            if isinstance(frame, GroupFrame):
                for Model in frame.query.get_all_models_used_in_query():
                    add(Model)
                continue

            add(frame.Model)
            if frame.is_join():
                add(frame.value.get_operation_context().model)

        return models


# ── Helpers ──────────────────────────────────────────────────────────────────


def _resolve_model(model: Any) -> Type[Model]:
    from ..models.registry import ModelRegistry

    if isinstance(model, str):
        Model = ModelRegistry.get(model)
        if Model is None:
            raise ModelNotFoundFault(model)
        return Model

    if model is None:
        raise QueryFault("<unknown>", "where", "no root model provided")

    return model


def _model_projection(Model: Type[Model]) -> Dict[str, ProjectionEntry]:
    return {
        field.get_qualified_name(): ProjectionEntry(field)
        for field in Model.iterate_fields()
        if not field.type.is_virtual()
    }


def _flatten(items: Iterable[Any]) -> List[Any]:
    flat: List[Any] = []
    for item in items:
        if isinstance(item, (list, tuple)):
            flat.extend(_flatten(item))
        else:
            flat.append(item)
    return flat
