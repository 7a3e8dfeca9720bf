"""
ormsql model options — parsed from the inner ``Meta`` class.
"""

from __future__ import annotations

import re
from typing import List, Optional

__all__ = ["Options"]


def _default_table_name(model_name: str) -> str:
    # RoleThing -> role_things
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", model_name).lower()
    return snake if snake.endswith("s") else f"{snake}s"


class Options:
    """
    Parsed model options from inner Meta class.

    Attributes:
        table_name: Database table name (default: snake_case plural of the class name)
        ordering: Default read ordering, e.g. ``["-created_at", "id"]``
        abstract: Whether the model is abstract (not registered, no table)
    """

    __slots__ = ("table_name", "ordering", "abstract")

    def __init__(self, model_name: str, meta: Optional[type] = None):
        self.table_name: str = (
            getattr(meta, "table_name", None) if meta else None
        ) or _default_table_name(model_name)
        self.ordering: List[str] = list(getattr(meta, "ordering", []) if meta else [])
        self.abstract: bool = getattr(meta, "abstract", False) if meta else False

    def __repr__(self) -> str:
        return f"<Options: {self.table_name}>"
