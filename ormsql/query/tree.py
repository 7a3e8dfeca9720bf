"""
ormsql condition tree — the operation stack parsed once into typed nodes.

Each condition frame is classified exactly once:

    join      – value is a query with no conditions of its own
    subquery  – value is a query with conditions (IN / ANY / ALL)
    exists    – EXISTS / NOT EXISTS over a query
    scalar    – anything else

Group frames become ``GroupNode``s holding the nested query's tree. The
SQL generator walks the tree twice: ``iter_joins()`` for the JOIN clause
and ``iter_filters()`` for the WHERE clause.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple, Union, TYPE_CHECKING

from .engine import ConditionFrame, GroupFrame

if TYPE_CHECKING:
    from .engine import QueryEngine

__all__ = ["ConditionNode", "GroupNode", "ConditionTree"]


@dataclass(frozen=True)
class ConditionNode:
    kind: str
    frame: ConditionFrame

    @property
    def connector(self) -> str:
        return self.frame.connector


@dataclass(frozen=True)
class GroupNode:
    connector: str
    tree: ConditionTree


Node = Union[ConditionNode, GroupNode]


def _classify(frame: ConditionFrame) -> str:
    from .engine import QueryEngine

    if frame.operator in ("EXISTS", "NOT EXISTS"):
        return "exists"
    if QueryEngine.is_query(frame.value):
        return "subquery" if frame.value.query_has_conditions() else "join"
    return "scalar"


@dataclass(frozen=True)
class ConditionTree:
    nodes: Tuple[Node, ...]

    @classmethod
    def from_query(cls, query: QueryEngine) -> ConditionTree:
        nodes = []
        for frame in query.get_operation_stack():
            if isinstance(frame, GroupFrame):
                nodes.append(GroupNode(frame.connector, frame.query.get_condition_tree()))
            else:
                nodes.append(ConditionNode(_classify(frame), frame))
        return cls(tuple(nodes))

    def iter_joins(self) -> Iterator[ConditionNode]:
        """Top-level join nodes, in declaration order."""
        for node in self.nodes:
            if isinstance(node, ConditionNode) and node.kind == "join":
                yield node

    def iter_filters(self) -> Iterator[Node]:
        """Filter conditions and groups, in declaration order."""
        for node in self.nodes:
            if isinstance(node, GroupNode) or node.kind != "join":
                yield node

    def __len__(self) -> int:
        return len(self.nodes)
