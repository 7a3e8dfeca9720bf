"""
ormsql SQL generation — escaping, literals, conditions, SELECT, writes
and DDL, composed into ``SQLQueryGenerator`` with per-dialect subclasses.
"""

from .conditions import ConditionMixin, JoinInfo
from .ddl import DDLMixin
from .generator import SQLQueryGenerator
from .literals import LiteralRenderMixin
from .mutations import MutationMixin, PreparedModels
from .naming import NamingMixin
from .postgres import PostgresQueryGenerator
from .select import SelectMixin
from .sqlite import SQLiteQueryGenerator

__all__ = [
    "SQLQueryGenerator",
    "SQLiteQueryGenerator",
    "PostgresQueryGenerator",
    "JoinInfo",
    "PreparedModels",
    "NamingMixin",
    "LiteralRenderMixin",
    "ConditionMixin",
    "SelectMixin",
    "MutationMixin",
    "DDLMixin",
]
