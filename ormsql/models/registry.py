"""
ormsql model registry — global name → Model class lookup.

The query engine, the generator and the materializer all resolve
``"Model:field"`` names through this registry.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Tuple, Type, TYPE_CHECKING

if TYPE_CHECKING:
    from .base import Model
    from .fields import Field

logger = logging.getLogger("ormsql.models.registry")

__all__ = ["ModelRegistry"]


class ModelRegistry:
    """Global registry for all concrete Model subclasses."""

    _models: Dict[str, Type[Model]] = {}

    @classmethod
    def register(cls, model_cls: Type[Model]) -> None:
        """Register a model class (replacing any model of the same name)."""
        name = model_cls.get_model_name()
        if name in cls._models and cls._models[name] is not model_cls:
            logger.debug(f"Replacing registered model '{name}'")
        cls._models[name] = model_cls
        logger.debug(f"Registered model '{name}' (table '{model_cls.get_table_name()}')")

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._models.pop(name, None)

    @classmethod
    def get(cls, name: str) -> Optional[Type[Model]]:
        """Get model class by name."""
        return cls._models.get(name)

    @classmethod
    def all_models(cls) -> Dict[str, Type[Model]]:
        """Get all registered models."""
        return dict(cls._models)

    @classmethod
    def iterate_model_fields(cls) -> Iterator[Tuple[Type[Model], Field]]:
        """Yield ``(Model, field)`` for every field of every registered model."""
        for model_cls in list(cls._models.values()):
            for field in model_cls.iterate_fields():
                yield model_cls, field

    @classmethod
    def find_field_by_column(cls, table_name: str, column_name: str) -> Optional[Field]:
        """Reverse lookup of a field from its table and column name."""
        for model_cls, field in cls.iterate_model_fields():
            if field.column_name == column_name and model_cls.get_table_name() == table_name:
                return field
        return None

    @classmethod
    def reset(cls) -> None:
        """Clear registry (for testing)."""
        cls._models.clear()
