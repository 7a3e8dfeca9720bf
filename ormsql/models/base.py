"""
ormsql Model base class and metaclass.

    class User(Model):
        class Meta:
            table_name = "users"

        id = Field(UUIDV4, primary_key=True, allow_null=False, default=UUID_V4)
        first_name = Field(STRING(64), index=True)

    user = User(first_name="Bob")        # id default applied, both fields dirty
    user.get_dirty_fields()              # {"id": DirtyState(None, "..."), ...}
    query = User.where().first_name.eq("Bob")
"""

from __future__ import annotations

import copy
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Type,
    TYPE_CHECKING,
)

from .defaults import DefaultValue
from .fields import Field, UNSET
from .options import Options
from .registry import ModelRegistry
from ..query.literals import LiteralBase

if TYPE_CHECKING:
    from ..query.engine import QueryEngine

__all__ = ["Model", "ModelMeta", "DirtyState"]


class DirtyState(NamedTuple):
    previous: Any
    current: Any


# ── Model Metaclass ──────────────────────────────────────────────────────────


class ModelMeta(type):
    """
    Metaclass for ormsql models.

    Handles:
    - Field collection (inherited fields are copied and rebound)
    - Meta class parsing
    - Model registration
    """

    def __new__(
        mcs,
        name: str,
        bases: Tuple[type, ...],
        namespace: Dict[str, Any],
        **kwargs,
    ) -> ModelMeta:
        parents = [b for b in bases if isinstance(b, ModelMeta)]
        if not parents:
            return super().__new__(mcs, name, bases, namespace)

        meta_class = namespace.pop("Meta", None)

        fields: Dict[str, Field] = {}
        for parent in parents:
            for fname, parent_field in getattr(parent, "_fields", {}).items():
                if fname not in namespace:
                    inherited = copy.copy(parent_field)
                    namespace[fname] = inherited
                    fields[fname] = inherited

        for key, value in namespace.items():
            if isinstance(value, Field):
                fields[key] = value

        opts = Options(name, meta_class)
        cls = super().__new__(mcs, name, bases, namespace)

        cls._fields = fields
        cls._meta = opts

        cls._pk_field = None
        for fname, field in fields.items():
            field.field_name = fname
            field.set_model(cls)
            if field.primary_key and cls._pk_field is None:
                cls._pk_field = field

        if not opts.abstract:
            ModelRegistry.register(cls)

        return cls


# ── Model ────────────────────────────────────────────────────────────────────


class Model(metaclass=ModelMeta):
    """
    ormsql Model base class.

    Instances track which fields changed since they were loaded (or since
    the last ``clear_dirty()``) and whether they exist in the database.
    Save hooks are async no-ops that subclasses may override.
    """

    _fields: ClassVar[Dict[str, Field]] = {}
    _meta: ClassVar[Options]
    _pk_field: ClassVar[Optional[Field]] = None

    def __init__(self, data: Optional[Dict[str, Any]] = None, **kwargs: Any):
        self._values: Dict[str, Any] = {}
        self._dirty: Dict[str, DirtyState] = {}
        self._related: Dict[str, List[Model]] = {}
        self._persisted = False

        attributes = {**(data or {}), **kwargs}

        for fname, field in self._fields.items():
            if field.type.is_virtual():
                continue

            if fname in attributes:
                value = attributes[fname]
            elif field.column_name in attributes:
                value = attributes[field.column_name]
            else:
                value = self._initial_default(field)
                if value is UNSET:
                    continue

            self._set_value(fname, value)

    @classmethod
    def from_database(cls, attributes: Dict[str, Any]) -> Model:
        """Build a clean, persisted instance from stored values (no defaults applied)."""
        instance = cls.__new__(cls)
        instance._values = {}
        instance._dirty = {}
        instance._related = {}
        instance._persisted = True
        instance.set_attributes(attributes)
        instance.clear_dirty()
        return instance

    def __repr__(self) -> str:
        pk_field = self._pk_field
        pk_val = self._values.get(pk_field.field_name, "?") if pk_field else "?"
        return f"<{self.__class__.__name__} pk={pk_val}>"

    # ── Schema access ────────────────────────────────────────────────

    @classmethod
    def get_model_name(cls) -> str:
        return cls.__name__

    @classmethod
    def get_table_name(cls, connection: Any = None) -> str:
        return cls._meta.table_name

    @classmethod
    def get_field(cls, name: str) -> Optional[Field]:
        if ":" in name:
            model_name, _, name = name.partition(":")
            if model_name != cls.get_model_name():
                return None
        return cls._fields.get(name)

    @classmethod
    def get_fields(cls, names: Optional[Iterable[str]] = None) -> List[Field]:
        """Fields in declaration order, optionally restricted to ``names``."""
        return list(cls.iterate_fields(names))

    @classmethod
    def iterate_fields(cls, names: Optional[Iterable[str]] = None) -> Iterator[Field]:
        if names is None:
            yield from cls._fields.values()
            return

        wanted = {name.field_name if isinstance(name, Field) else name for name in names}
        for fname, field in cls._fields.items():
            if fname in wanted:
                yield field

    @classmethod
    def get_field_by_column(cls, column_name: str) -> Optional[Field]:
        for field in cls._fields.values():
            if field.column_name == column_name:
                return field
        return None

    @classmethod
    def get_primary_key_field(cls) -> Optional[Field]:
        return cls._pk_field

    @classmethod
    def get_primary_key_field_name(cls) -> Optional[str]:
        return cls._pk_field.field_name if cls._pk_field else None

    @classmethod
    def where(cls, connection: Any = None) -> QueryEngine:
        """Start a query rooted at this model."""
        from ..query.engine import QueryEngine
        return QueryEngine(cls, connection=connection)

    # ── Values & dirty tracking ──────────────────────────────────────

    def _initial_default(self, field: Field) -> Any:
        default = field.default
        if default is UNSET or LiteralBase.is_literal(default):
            return UNSET

        if isinstance(default, DefaultValue):
            if default.flags["remote"] or not default.flags["on_insert"]:
                return UNSET
            return default({"field": field, "model": self, "connection": None})

        if callable(default):
            return default()

        return copy.deepcopy(default)

    def _get_value(self, name: str) -> Any:
        field = self._fields[name]
        if field.type.is_virtual():
            related = self._related.get(field.type.target_model_name, [])
            if getattr(field.type, "many", False):
                return list(related)
            return related[0] if related else None

        return self._values.get(name)

    def _set_value(self, name: str, value: Any) -> None:
        field = self._fields[name]
        if field.type.is_virtual():
            items = value if isinstance(value, (list, tuple)) else ([] if value is None else [value])
            self._related[field.type.target_model_name] = list(items)
            return

        first_assignment = name not in self._values
        original = self._dirty[name].previous if name in self._dirty else self._values.get(name)
        self._values[name] = value

        if not first_assignment and name in self._dirty and value == original:
            del self._dirty[name]
        elif first_assignment or value != original:
            self._dirty[name] = DirtyState(original, value)

    def get_dirty_fields(self, *, insert: bool = False, update: bool = False) -> Dict[str, DirtyState]:
        """
        Changed fields, in field declaration order.

        With ``update=True`` fields whose default is flagged ``on_update``
        are included with the default's value (a literal for remote
        defaults), as long as some other field changed. With ``insert=True``
        unset client-side ``on_insert`` defaults are included.
        """
        result: Dict[str, DirtyState] = {}
        changed = any(
            fname in self._dirty and not field.type.is_virtual() for fname, field in self._fields.items()
        )

        for fname, field in self._fields.items():
            if field.type.is_virtual():
                continue

            if fname in self._dirty:
                result[fname] = self._dirty[fname]
                continue

            default = field.default
            if not isinstance(default, DefaultValue):
                continue

            context = {"field": field, "model": self, "connection": None}
            if update and changed and default.flags["on_update"]:
                result[fname] = DirtyState(self._values.get(fname), default(context))
            elif (
                insert
                and default.flags["on_insert"]
                and not default.flags["remote"]
                and fname not in self._values
            ):
                result[fname] = DirtyState(None, default(context))

        return result

    def is_dirty(self) -> bool:
        return bool(self._dirty)

    def clear_dirty(self, *names: str) -> None:
        if not names:
            self._dirty.clear()
            return
        for name in names:
            self._dirty.pop(name, None)

    def set_attributes(self, data: Dict[str, Any]) -> None:
        """Assign known fields from ``data`` (keys may be field or column names)."""
        for key, value in data.items():
            field = self._fields.get(key) or self.get_field_by_column(key)
            if field is not None:
                self._set_value(field.field_name, value)

    def get_primary_key_value(self) -> Any:
        pk_name = self.get_primary_key_field_name()
        return self._values.get(pk_name) if pk_name else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            fname: self._values.get(fname)
            for fname, field in self._fields.items()
            if not field.type.is_virtual()
        }

    # ── Persistence state ────────────────────────────────────────────

    def is_persisted(self) -> bool:
        return self._persisted

    def set_persisted(self, persisted: bool = True) -> None:
        self._persisted = persisted

    # ── Relations ────────────────────────────────────────────────────

    def assign_related_models(self, models: Sequence[Model]) -> None:
        """Attach related instances, grouped by model name (no duplicates)."""
        for related in models:
            bucket = self._related.setdefault(related.get_model_name(), [])
            if not any(existing is related for existing in bucket):
                bucket.append(related)

    def get_related(self, model_name: str) -> List[Model]:
        return list(self._related.get(model_name, []))

    # ── Save hooks ───────────────────────────────────────────────────

    async def on_before_create(self, connection: Any, options: Dict[str, Any]) -> None:
        pass

    async def on_after_create(self, connection: Any, options: Dict[str, Any]) -> None:
        pass

    async def on_before_update(self, connection: Any, options: Dict[str, Any]) -> None:
        pass

    async def on_after_update(self, connection: Any, options: Dict[str, Any]) -> None:
        pass

    async def on_before_save(self, connection: Any, options: Dict[str, Any]) -> None:
        pass

    async def on_after_save(self, connection: Any, options: Dict[str, Any]) -> None:
        pass
