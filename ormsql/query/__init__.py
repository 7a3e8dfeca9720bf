"""
ormsql query layer — immutable query engine, literals and the condition tree.
"""

from .literals import (
    LiteralBase,
    Literal,
    FieldLiteral,
    CountLiteral,
    SumLiteral,
    AverageLiteral,
    MinLiteral,
    MaxLiteral,
    DistinctLiteral,
)
from .engine import (
    QueryEngine,
    ConditionFrame,
    GroupFrame,
    OperationContext,
    ProjectionEntry,
    INVERSE_OPERATORS,
)
from .tree import ConditionTree, ConditionNode, GroupNode
from .utils import (
    parse_qualified_name,
    resolve_qualified_field,
    sort_model_names_by_dependency_order,
)

__all__ = [
    "LiteralBase",
    "Literal",
    "FieldLiteral",
    "CountLiteral",
    "SumLiteral",
    "AverageLiteral",
    "MinLiteral",
    "MaxLiteral",
    "DistinctLiteral",
    "QueryEngine",
    "ConditionFrame",
    "GroupFrame",
    "OperationContext",
    "ProjectionEntry",
    "INVERSE_OPERATORS",
    "ConditionTree",
    "ConditionNode",
    "GroupNode",
    "parse_qualified_name",
    "resolve_qualified_field",
    "sort_model_names_by_dependency_order",
]
