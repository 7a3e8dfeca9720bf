"""
ormsql condition & join compiler.

Renders single comparisons, WHERE clauses and JOIN clauses from a query's
condition tree:

    "users"."first_name" = 'Bob'
    ("users"."id" IS NULL OR "users"."id" IN ('a','b'))
    "users"."id" IN (SELECT ...)
    EXISTS(SELECT 1 FROM ... LIMIT 1 OFFSET 0)
    INNER JOIN "roles" ON "roles"."id" = "users"."primary_role_id"

Joins are grouped by the joined model and emitted in dependency order, so
the same logical query always renders byte-identical SQL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, TYPE_CHECKING

from ..faults import FieldNotFoundFault, OperatorValueFault, QueryFault
from ..query.engine import ConditionFrame, OperationContext, QueryEngine
from ..query.literals import Literal, LiteralBase
from ..query.tree import ConditionTree, GroupNode
from ..query.utils import sort_model_names_by_dependency_order

if TYPE_CHECKING:
    from ..models.base import Model
    from ..models.fields import Field

__all__ = ["ConditionMixin", "JoinInfo"]


_SPECIAL_VALUES = (None, True, False)


def _is_special(value: Any) -> bool:
    return any(value is special for special in _SPECIAL_VALUES)


@dataclass(frozen=True)
class JoinInfo:
    """One join edge between the frame's field and the joined query's field."""

    operator: str
    join_type: str
    root_model_name: str
    join_model: Type[Model]
    join_model_name: str
    left_side_model: Type[Model]
    left_side_model_name: str
    left_frame: ConditionFrame
    left_side_field: Field
    right_side_model: Type[Model]
    right_side_model_name: str
    right_context: OperationContext
    right_side_field: Field


class ConditionMixin:
    """Condition, WHERE and JOIN rendering for ``SQLQueryGenerator``."""

    # ── Operators ────────────────────────────────────────────────────

    def generate_select_query_operator(
        self,
        frame: Any,
        operator: Any,
        value: Any,
        value_is_reference: bool,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Map a query operator to its SQL token, based on the value's shape."""
        if LiteralBase.is_literal(operator):
            return operator.to_string(self)

        is_array = isinstance(value, (list, tuple, set))

        if operator in ("EQ", "NEQ"):
            negated = operator == "NEQ"
            if value_is_reference:
                return "!=" if negated else "="
            if _is_special(value):
                return "IS NOT" if negated else "IS"
            if is_array:
                return "NOT IN" if negated else "IN"
            return "!=" if negated else "="

        if operator in ("GT", "GTE", "LT", "LTE"):
            if is_array:
                raise OperatorValueFault(operator, "array values are not supported")
            return {"GT": ">", "GTE": ">=", "LT": "<", "LTE": "<="}[operator]

        if operator in ("LIKE", "NOT_LIKE"):
            token = "LIKE" if operator == "LIKE" else "NOT LIKE"
            if value_is_reference:
                raise OperatorValueFault(operator, f"the \"{token}\" operator can not be used for table joins")
            if not isinstance(value, str):
                raise OperatorValueFault(operator, f"the \"{token}\" operator requires a string for a value")
            return token

        raise OperatorValueFault(str(operator), "unknown operator")

    def format_like_value(self, context: Dict[str, Any]) -> Any:
        return context["value"]

    def generate_condition_postfix(self, context: Dict[str, Any]) -> str:
        return ""

    # ── Conditions ───────────────────────────────────────────────────

    def _sub_query_options(self, options: Dict[str, Any], operator: str) -> Dict[str, Any]:
        return self.stack_assign(
            options,
            {
                "is_sub_query": True,
                "sub_query_operator": operator,
                "return_field_projection": False,
                "include_relations": False,
            },
        )

    def generate_select_query_condition(
        self,
        frame: ConditionFrame,
        value: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        operator = frame.operator

        if operator in ("EXISTS", "NOT EXISTS"):
            inner = value.clone().project(Literal("1")).limit(1).offset(0)
            sub_options = self._sub_query_options(options, operator)
            return f"{operator}({self.generate_select_statement(inner, sub_options)})"

        field = frame.Field
        if field is None:
            raise FieldNotFoundFault(frame.model_name or "<unknown>", frame.field_name or "<none>")

        if isinstance(value, (list, tuple, set)):
            if operator not in ("EQ", "NEQ"):
                raise OperatorValueFault(operator, f"invalid array value provided to '{field.field_name}'")

            values = self.prepare_array_values_for_sql(value)
            special = [item for item in values if _is_special(item)]
            ordinary = [item for item in values if not _is_special(item)]

            if special:
                sub_parts = [self.generate_select_query_condition(frame, item, options) for item in special]
                if ordinary:
                    sub_parts.append(self.generate_select_query_condition(frame, ordinary, options))
                joiner = " AND " if operator == "NEQ" else " OR "
                return f"({joiner.join(sub_parts)})"

            if not ordinary:
                raise OperatorValueFault(
                    operator,
                    f"array value provided to '{field.field_name}.{operator}' can not be empty",
                )

            value = ordinary

        escaped_column = self.get_escaped_column_name(field.model, field, options)
        sql_operator = self.generate_select_query_operator(frame, operator, value, False, options)

        if QueryEngine.is_query(value):
            if not value.query_has_conditions():
                return ""

            if frame.quantifier in ("ANY", "ALL"):
                sub_options = self._sub_query_options(options, frame.quantifier)
                return f"{escaped_column} {sql_operator} {frame.quantifier}({self.generate_select_statement(value, sub_options)})"

            if sql_operator == "=":
                sql_operator = "IN"
            elif sql_operator == "!=":
                sql_operator = "NOT IN"

            sub_options = self._sub_query_options(options, sql_operator)
            return f"{escaped_column} {sql_operator} ({self.generate_select_statement(value, sub_options)})"

        context = {
            "frame": frame,
            "field": field,
            "sql_operator": sql_operator,
            "operator": operator,
            "value": value,
        }
        if sql_operator in ("LIKE", "NOT LIKE"):
            value = self.format_like_value(context)

        postfix = self.generate_condition_postfix(context)
        condition = f"{escaped_column} {sql_operator} {self.escape(value)}"
        return f"{condition} {postfix}" if postfix else condition

    # ── WHERE ────────────────────────────────────────────────────────

    def generate_select_where_conditions(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        return self._generate_where_from_tree(query.get_condition_tree(), options or {})

    def _generate_where_from_tree(self, tree: ConditionTree, options: Dict[str, Any]) -> str:
        sql_parts: List[str] = []

        for node in tree.iter_filters():
            if isinstance(node, GroupNode):
                result = self._generate_where_from_tree(node.tree, options)
                if result:
                    result = f"({result})"
            else:
                result = self.generate_select_query_condition(node.frame, node.frame.value, options)

            if not result:
                continue

            prefix = ""
            if sql_parts:
                prefix = "OR " if node.connector == "OR" else "AND "

            final = f"{prefix}{result}"
            # Repeated conditions render once
            if (not sql_parts or sql_parts[0] != result) and final not in sql_parts:
                sql_parts.append(final)

        return " ".join(sql_parts)

    # ── Joins ────────────────────────────────────────────────────────

    def generate_sql_join_type(self, join_type: Optional[str], outer: bool = False, options: Optional[Dict[str, Any]] = None) -> str:
        if not join_type or join_type == "inner":
            return "INNER JOIN"
        if join_type == "left":
            return "LEFT OUTER JOIN" if outer else "LEFT JOIN"
        if join_type == "right":
            return "RIGHT OUTER JOIN" if outer else "RIGHT JOIN"
        if join_type == "full":
            return "FULL OUTER JOIN" if outer else "FULL JOIN"
        if join_type == "cross":
            return "CROSS JOIN"
        return join_type

    def generate_from_table_or_table_join(
        self,
        Model: Optional[Type[Model]],
        join_type: Any = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        if Model is None:
            raise QueryFault("<unknown>", "from", "no valid model provided")

        escaped_table = self.get_escaped_table_name(Model, options)
        if join_type and LiteralBase.is_literal(join_type):
            join_type = join_type.to_string(self)

        return f"{join_type} {escaped_table}" if join_type else f"FROM {escaped_table}"

    def get_join_table_info(
        self,
        left_frame: ConditionFrame,
        right_context: OperationContext,
        join_type: str,
        root_model_name: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> JoinInfo:
        left_model = left_frame.Model
        if left_model is None:
            raise QueryFault(root_model_name, "join", "no model found for left-side of join statement")

        left_field = left_frame.Field
        if left_field is None:
            raise QueryFault(root_model_name, "join", "no left-side field found to match on for table join statement")

        right_model = right_context.model
        if right_model is None:
            raise QueryFault(root_model_name, "join", "no model found for right-side of join statement")

        right_field = right_context.field
        if right_field is None:
            raise QueryFault(root_model_name, "join", "no right-side field found to match on for table join statement")

        right_model_name = right_model.get_model_name()
        swap = right_model_name == root_model_name

        return JoinInfo(
            operator=left_frame.operator,
            join_type=join_type,
            root_model_name=root_model_name,
            join_model=left_model if swap else right_model,
            join_model_name=left_frame.model_name if swap else right_model_name,
            left_side_model=left_model,
            left_side_model_name=left_frame.model_name,
            left_frame=left_frame,
            left_side_field=left_field,
            right_side_model=right_model,
            right_side_model_name=right_model_name,
            right_context=right_context,
            right_side_field=right_field,
        )

    def generate_select_join_on_table_query_condition(
        self,
        left_part: Any,
        right_part: Any,
        left_field: Field,
        right_field: Field,
        operator: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        left_column = self.get_escaped_column_name(left_field.model, left_field, options)
        right_column = self.get_escaped_column_name(right_field.model, right_field, options)
        sql_operator = self.generate_select_query_operator(left_part, operator, None, True, options)
        return f"{left_column} {sql_operator} {right_column}"

    def generate_join_on_table_query_conditions(self, join_infos: List[JoinInfo], options: Optional[Dict[str, Any]] = None) -> str:
        if not join_infos:
            return ""

        root_info = join_infos[0]
        sql_parts = [
            self.generate_from_table_or_table_join(root_info.join_model, root_info.join_type, options),
            "ON",
        ]

        for index, info in enumerate(join_infos):
            if index > 0:
                sql_parts.append("AND" if info.left_frame.and_ else "OR")

            sql_parts.append(
                self.generate_select_join_on_table_query_condition(
                    info.right_context,
                    info.left_frame,
                    info.right_side_field,
                    info.left_side_field,
                    info.operator,
                    options,
                )
            )

        return " ".join(sql_parts)

    def sort_join_relation_order(self, joins: Dict[str, List[JoinInfo]]) -> List[str]:
        def get_dependencies(model_name: str) -> List[str]:
            dependencies = []
            for info in joins.get(model_name, []):
                if info.right_side_model_name != model_name:
                    dependencies.append(info.right_side_model_name)
                if info.left_side_model_name != model_name:
                    dependencies.append(info.left_side_model_name)
            return dependencies

        return sort_model_names_by_dependency_order(list(joins.keys()), get_dependencies)

    def generate_select_query_join_tables(self, query: QueryEngine, options: Optional[Dict[str, Any]] = None) -> str:
        root_model_name = query.get_operation_context().root_model_name
        joins: Dict[str, List[JoinInfo]] = {}

        for node in query.get_condition_tree().iter_joins():
            frame = node.frame
            join_type = self.generate_sql_join_type(frame.join_type, frame.join_outer, options)
            info = self.get_join_table_info(
                frame,
                frame.value.get_operation_context(),
                join_type,
                root_model_name,
                options,
            )
            joins.setdefault(info.join_model_name, []).append(info)

        return " ".join(
            self.generate_join_on_table_query_conditions(joins[model_name], options)
            for model_name in self.sort_join_relation_order(joins)
        )
