"""
ormsql literal renderer — one render method per literal kind.

``render_literal`` is the single dispatch point used by
``LiteralBase.to_string``:

    count     COUNT(<column>|*)[ AS alias]
    sum       SUM(<column>)[ AS alias]
    average   AVG(<column>)[ AS alias]
    min/max   MIN(..)/MAX(..)[ AS alias]
    distinct  DISTINCT | DISTINCT ON(<column>) | DISTINCT <column>
    field     <projection> (alias suppressed outside projections)
    raw       raw text

A literal nested inside another literal (``is_sub_field``), or rendered
with ``no_projection_aliases``, never carries an ``AS`` alias.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..faults import QueryFault
from ..query.literals import LiteralBase

__all__ = ["LiteralRenderMixin"]


class LiteralRenderMixin:
    """Literal rendering for ``SQLQueryGenerator``."""

    def render_literal(self, literal: LiteralBase, options: Optional[Dict[str, Any]] = None) -> str:
        renderer = getattr(self, f"_render_{literal.kind}_literal", None)
        if renderer is None:
            raise QueryFault(type(literal).__name__, "render_literal", f"unknown literal kind '{literal.kind}'")
        return renderer(literal, options or {})

    def _get_literal_alias(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        if options.get("is_sub_field") or options.get("no_projection_aliases"):
            return ""

        alias = literal.options.get("alias") or options.get("alias")
        if not alias:
            return ""

        return f" AS {self.escape_id(alias)}"

    def _render_literal_column(self, literal: LiteralBase, options: Dict[str, Any], allow_star: bool = False) -> str:
        field = literal.get_field(self.connection)

        if field is None:
            if allow_star:
                return "*"
            raise QueryFault(type(literal).__name__, "render_literal", "a field is required")

        if LiteralBase.is_literal(field):
            return field.to_string(self, self.stack_assign(options, {"is_sub_field": True}))

        return self.get_escaped_column_name(field.model, field, self.stack_assign(options, literal.options))

    def _render_aggregate(self, function: str, literal: LiteralBase, options: Dict[str, Any], allow_star: bool = False) -> str:
        column = self._render_literal_column(literal, options, allow_star=allow_star)
        return f"{function}({column}){self._get_literal_alias(literal, options)}"

    def _render_count_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        return self._render_aggregate("COUNT", literal, options, allow_star=True)

    def _render_sum_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        return self._render_aggregate("SUM", literal, options)

    def _render_average_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        return self._render_aggregate("AVG", literal, options)

    def _render_min_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        return self._render_aggregate("MIN", literal, options)

    def _render_max_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        return self._render_aggregate("MAX", literal, options)

    def _render_distinct_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        field = literal.get_field(self.connection) or literal.value_of()
        if not field:
            return "DISTINCT"

        if LiteralBase.is_literal(field):
            inner = field.to_string(self, self.stack_assign(options, {"no_projection_aliases": True}))
            if not inner:
                return ""
        else:
            inner = self.get_escaped_column_name(
                getattr(field, "model", None),
                field,
                self.stack_assign(options, literal.options, {"no_projection_aliases": True}),
            )

        if options.get("is_sub_field"):
            return f"DISTINCT {inner}"
        return f"DISTINCT ON({inner})"

    def _render_field_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        field = literal.get_field(self.connection)
        if LiteralBase.is_literal(field):
            return field.to_string(self, options)

        if field is None:
            raise QueryFault(type(literal).__name__, "render_literal", "a field is required")

        no_aliases = bool(
            options.get("is_sub_field")
            or not options.get("is_projection")
            or options.get("alias") is False
        )
        return self.get_escaped_projection_name(
            field.model,
            field,
            self.stack_assign(options, {"no_projection_aliases": no_aliases}, literal.options),
        )

    def _render_raw_literal(self, literal: LiteralBase, options: Dict[str, Any]) -> str:
        return str(literal.value)
