"""
ormsql connections — the async connection façade, the SQLite driver and
the result materializer.
"""

from .base import SQLConnectionBase, QueryResult
from .materializer import (
    ModelDataMap,
    group_rows_by_model,
    build_model_graph,
    apply_write_results,
)
from .sqlite import SQLiteConnection

__all__ = [
    "SQLConnectionBase",
    "QueryResult",
    "SQLiteConnection",
    "ModelDataMap",
    "group_rows_by_model",
    "build_model_graph",
    "apply_write_results",
]
