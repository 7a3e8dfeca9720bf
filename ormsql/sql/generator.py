"""
ormsql SQL query generator — the composed, dialect-neutral generator.

    from ormsql.sql import SQLiteQueryGenerator

    generator = SQLiteQueryGenerator()
    generator.generate_select_statement(User.where().first_name.eq("Bob"))
    # SELECT "users"."id" AS "User:id",... FROM "users"
    #   WHERE "users"."first_name" = 'Bob' ORDER BY ...

The generator is synchronous and holds no per-query state, so one
instance may be shared by every query of a connection.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Type, Union, TYPE_CHECKING

from ..config import ConnectionConfig
from ..query.engine import ProjectionEntry, QueryEngine
from .conditions import ConditionMixin
from .ddl import DDLMixin
from .literals import LiteralRenderMixin
from .mutations import MutationMixin
from .naming import NamingMixin
from .select import SelectMixin

if TYPE_CHECKING:
    from ..models.base import Model

logger = logging.getLogger("ormsql.sql.generator")

__all__ = ["SQLQueryGenerator"]


class SQLQueryGenerator(
    NamingMixin,
    LiteralRenderMixin,
    ConditionMixin,
    SelectMixin,
    MutationMixin,
    DDLMixin,
):
    """
    Base SQL generator.

    Parameters:
        connection  – connection the generator renders for (may be None)
        config      – ConnectionConfig; defaults to the connection's config
    """

    dialect = "generic"
    supports_default_in_values = True

    def __init__(self, connection: Any = None, config: Optional[ConnectionConfig] = None):
        self.connection = connection
        self.config = config or getattr(connection, "config", None) or ConnectionConfig()
        logger.debug(f"{type(self).__name__} created (dialect '{self.dialect}')")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} dialect={self.dialect}>"

    # ── Options ──────────────────────────────────────────────────────

    @staticmethod
    def stack_assign(*mappings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Merge option mappings left to right; ``None`` entries are skipped."""
        merged: Dict[str, Any] = {}
        for mapping in mappings:
            if mapping:
                merged.update(mapping)
        return merged

    @property
    def force_limit(self) -> int:
        return self.config.force_limit

    def _use_newlines(self, options: Optional[Dict[str, Any]]) -> bool:
        if options and "newlines" in options:
            return options["newlines"] is not False
        return self.config.newlines

    def get_query_generator(self) -> SQLQueryGenerator:
        return self

    # ── Context predicates ───────────────────────────────────────────

    def is_order_supported_in_context(self, options: Optional[Dict[str, Any]] = None) -> Union[bool, str]:
        options = options or {}
        if options.get("is_sub_query"):
            operator = options.get("sub_query_operator")
            if operator in ("EXISTS", "NOT EXISTS"):
                return False
            if operator in ("IN", "NOT IN", "ANY", "ALL"):
                return "PROJECTION_ONLY"
        return True

    def is_limit_supported_in_context(self, options: Optional[Dict[str, Any]] = None) -> bool:
        return True

    def get_default_order(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> Dict[str, ProjectionEntry]:
        """``Meta.ordering`` for reads; deletes and updates are unordered by default."""
        options = options or {}
        if options.get("is_delete_operation") or options.get("is_update_operation"):
            return {}

        ordering = Model._meta.ordering
        if not ordering:
            return {}

        return QueryEngine(Model, connection=self.connection).order(*ordering).get_operation_context().order
