"""
ormsql default values — client-side and database-supplied column defaults.

A default is either a plain value or a ``DefaultValue`` wrapping a callable
with flags:

    on_insert – applied when a row is inserted
    on_update – applied when a row is updated
    remote    – the database supplies the value (autoincrement, now())
    literal   – the callable yields a Literal rendered verbatim into SQL
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, Iterable

from ..query.literals import Literal

__all__ = [
    "DefaultValue",
    "check_default_value_flags",
    "AUTO_INCREMENT",
    "NOW",
    "NOW_ON_UPDATE",
    "UUID_V4",
]


class DefaultValue:
    """Callable default carrying insert/update/remote/literal flags."""

    def __init__(
        self,
        func: Callable[[Dict[str, Any]], Any],
        *,
        on_insert: bool = True,
        on_update: bool = False,
        remote: bool = False,
        literal: bool = False,
        name: str = "",
    ):
        self.func = func
        self.flags = {
            "on_insert": on_insert,
            "on_update": on_update,
            "remote": remote,
            "literal": literal,
        }
        self.name = name or getattr(func, "__name__", "default")

    def __call__(self, context: Dict[str, Any]) -> Any:
        return self.func(context)

    def __repr__(self) -> str:
        enabled = ",".join(flag for flag, on in self.flags.items() if on)
        return f"DefaultValue({self.name}; {enabled})"


def check_default_value_flags(default: Any, flags: Iterable[str]) -> bool:
    """
    True if ``default`` carries every flag in ``flags``.

    Plain (non-callable) defaults count as insert-only client defaults.
    """
    if isinstance(default, DefaultValue):
        return all(default.flags.get(flag, False) for flag in flags)

    implicit = {"on_insert": True}
    return all(implicit.get(flag, False) for flag in flags)


AUTO_INCREMENT = DefaultValue(
    lambda context: Literal("AUTOINCREMENT", escape=False, no_default_statement=True),
    remote=True,
    literal=True,
    name="AUTO_INCREMENT",
)

NOW = DefaultValue(
    lambda context: Literal("CURRENT_TIMESTAMP", escape=False),
    remote=True,
    literal=True,
    name="NOW",
)

NOW_ON_UPDATE = DefaultValue(
    lambda context: Literal("CURRENT_TIMESTAMP", escape=False),
    on_update=True,
    remote=True,
    literal=True,
    name="NOW_ON_UPDATE",
)

UUID_V4 = DefaultValue(lambda context: str(uuid.uuid4()), name="UUID_V4")
