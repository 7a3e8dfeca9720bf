"""
Condition & join compiler (sql/conditions.py)

Tests operator mapping, WHERE rendering (arrays, groups, sub-queries,
EXISTS) and JOIN clauses.
"""

import pytest

from ormsql.faults import OperatorValueFault
from ormsql.query import Literal
from ormsql.sql import SQLQueryGenerator

from tests.conftest import Role, RoleThing, User, UserThing


ESCAPE = "ESCAPE '\\'"


def where(generator, query):
    return generator.generate_select_where_conditions(query)


# ============================================================================
# Operators
# ============================================================================


class TestOperators:

    def test_eq(self, generator):
        assert generator.generate_select_query_operator(None, "EQ", "a", False) == "="
        assert generator.generate_select_query_operator(None, "NEQ", "a", False) == "!="

    def test_null_and_booleans_use_is(self, generator):
        assert generator.generate_select_query_operator(None, "EQ", None, False) == "IS"
        assert generator.generate_select_query_operator(None, "NEQ", True, False) == "IS NOT"

    def test_arrays_use_in(self, generator):
        assert generator.generate_select_query_operator(None, "EQ", [1, 2], False) == "IN"
        assert generator.generate_select_query_operator(None, "NEQ", [1, 2], False) == "NOT IN"

    def test_references_use_plain_comparison(self, generator):
        assert generator.generate_select_query_operator(None, "EQ", None, True) == "="

    def test_comparisons(self, generator):
        assert generator.generate_select_query_operator(None, "GT", 1, False) == ">"
        assert generator.generate_select_query_operator(None, "GTE", 1, False) == ">="
        assert generator.generate_select_query_operator(None, "LT", 1, False) == "<"
        assert generator.generate_select_query_operator(None, "LTE", 1, False) == "<="

    def test_comparison_rejects_arrays(self, generator):
        with pytest.raises(OperatorValueFault):
            generator.generate_select_query_operator(None, "GT", [1], False)

    def test_like(self, generator):
        assert generator.generate_select_query_operator(None, "LIKE", "%a", False) == "LIKE"
        assert generator.generate_select_query_operator(None, "NOT_LIKE", "%a", False) == "NOT LIKE"

    def test_like_rejects_joins_and_non_strings(self, generator):
        with pytest.raises(OperatorValueFault):
            generator.generate_select_query_operator(None, "LIKE", "%a", True)
        with pytest.raises(OperatorValueFault):
            generator.generate_select_query_operator(None, "LIKE", 5, False)

    def test_literal_operator(self, generator):
        assert generator.generate_select_query_operator(None, Literal("@>"), "a", False) == "@>"

    def test_unknown_operator(self, generator):
        with pytest.raises(OperatorValueFault):
            generator.generate_select_query_operator(None, "BETWEEN", 1, False)


# ============================================================================
# WHERE
# ============================================================================


class TestWhereConditions:

    def test_equality(self, generator):
        query = User.where().first_name.eq("Bob")
        assert where(generator, query) == "\"users\".\"first_name\" = 'Bob'"

    def test_null(self, generator):
        assert where(generator, User.where().first_name.eq(None)) == '"users"."first_name" IS NULL'
        assert where(generator, User.where().first_name.neq(None)) == '"users"."first_name" IS NOT NULL'

    def test_array(self, generator):
        query = User.where().id.eq(["a", "b"])
        assert where(generator, query) == "\"users\".\"id\" IN ('a','b')"

    def test_array_with_null(self, generator):
        query = User.where().id.eq(["a", None])
        assert where(generator, query) == "(\"users\".\"id\" IS NULL OR \"users\".\"id\" IN ('a'))"

    def test_negated_array_with_null(self, generator):
        query = User.where().id.neq(["a", None])
        assert where(generator, query) == "(\"users\".\"id\" IS NOT NULL AND \"users\".\"id\" NOT IN ('a'))"

    def test_array_of_only_null(self, generator):
        query = User.where().id.eq([None])
        assert where(generator, query) == '("users"."id" IS NULL)'

    def test_empty_array_is_rejected(self, generator):
        with pytest.raises(OperatorValueFault):
            where(generator, User.where().id.eq([]))

    def test_array_with_comparison_is_rejected(self, generator):
        with pytest.raises(OperatorValueFault):
            where(generator, User.where().first_name.gt(["a"]))

    def test_like_has_escape_clause(self, generator):
        query = User.where().first_name.like("%bob%")
        assert where(generator, query) == f"\"users\".\"first_name\" LIKE '%bob%' {ESCAPE}"

    def test_like_without_escape_clause_in_base_dialect(self):
        query = User.where().first_name.not_like("%bob%")
        assert where(SQLQueryGenerator(), query) == "\"users\".\"first_name\" NOT LIKE '%bob%'"

    def test_not_inverts_the_next_operator(self, generator):
        query = User.where().not_().first_name.eq("Bob").last_name.eq("Brown")
        assert where(generator, query) == "\"users\".\"first_name\" != 'Bob' AND \"users\".\"last_name\" = 'Brown'"

    def test_or(self, generator):
        query = User.where().first_name.eq("Bob").or_().last_name.eq("Brown")
        assert where(generator, query) == "\"users\".\"first_name\" = 'Bob' OR \"users\".\"last_name\" = 'Brown'"

    def test_group(self, generator):
        query = User.where().first_name.eq("Bob").and_(
            User.where().last_name.eq("A").or_().last_name.eq("B")
        )
        assert where(generator, query) == (
            "\"users\".\"first_name\" = 'Bob' AND "
            "(\"users\".\"last_name\" = 'A' OR \"users\".\"last_name\" = 'B')"
        )

    def test_or_group(self, generator):
        query = User.where().first_name.eq("Bob").or_(User.where().last_name.eq("A"))
        assert where(generator, query) == "\"users\".\"first_name\" = 'Bob' OR (\"users\".\"last_name\" = 'A')"

    def test_repeated_condition_renders_once(self, generator):
        query = User.where().first_name.eq("Bob").first_name.eq("Bob")
        assert where(generator, query) == "\"users\".\"first_name\" = 'Bob'"

    def test_no_conditions(self, generator):
        assert where(generator, User.where()) == ""


class TestSubQueryConditions:

    def test_in_sub_query(self, generator):
        sub_query = Role.where().name.eq("admin").project("id")
        query = User.where().primary_role_id.eq(sub_query)
        assert where(generator, query) == (
            "\"users\".\"primary_role_id\" IN "
            "(SELECT \"roles\".\"id\" AS \"Role:id\" FROM \"roles\" WHERE \"roles\".\"name\" = 'admin')"
        )

    def test_not_in_sub_query(self, generator):
        sub_query = Role.where().name.eq("admin").project("id")
        query = User.where().primary_role_id.neq(sub_query)
        assert where(generator, query).startswith('"users"."primary_role_id" NOT IN (SELECT ')

    def test_quantified_sub_query(self, generator):
        sub_query = Role.where().name.eq("admin").project("id")
        query = User.where().primary_role_id.eq(sub_query, "any")
        assert where(generator, query).startswith('"users"."primary_role_id" = ANY(SELECT "roles"."id"')

    def test_sub_query_order_limited_to_projection(self, generator):
        sub_query = Role.where().name.eq("admin").project("id").order("name")
        result = where(generator, User.where().primary_role_id.eq(sub_query))
        assert "ORDER BY" not in result

        sub_query = Role.where().name.eq("admin").project("id").order("-id")
        result = where(generator, User.where().primary_role_id.eq(sub_query))
        assert result.endswith('ORDER BY "roles"."id" DESC)')

    def test_exists(self, generator):
        query = User.where().exists(Role.where().name.eq("admin"))
        assert where(generator, query) == (
            "EXISTS(SELECT 1 FROM \"roles\" WHERE \"roles\".\"name\" = 'admin' LIMIT 1 OFFSET 0)"
        )

    def test_not_exists(self, generator):
        query = User.where().not_exists(Role.where().name.eq("admin"))
        assert where(generator, query).startswith("NOT EXISTS(SELECT 1 FROM \"roles\"")

    def test_join_frames_are_not_filters(self, generator):
        query = User.where().primary_role_id.eq(Role.where().id)
        assert where(generator, query) == ""


# ============================================================================
# JOIN
# ============================================================================


class TestJoins:

    def test_join_types(self):
        generator = SQLQueryGenerator()
        assert generator.generate_sql_join_type(None) == "INNER JOIN"
        assert generator.generate_sql_join_type("left") == "LEFT JOIN"
        assert generator.generate_sql_join_type("left", True) == "LEFT OUTER JOIN"
        assert generator.generate_sql_join_type("right", True) == "RIGHT OUTER JOIN"
        assert generator.generate_sql_join_type("full") == "FULL JOIN"
        assert generator.generate_sql_join_type("cross") == "CROSS JOIN"

    def test_sqlite_join_types_never_outer(self, generator):
        assert generator.generate_sql_join_type("left", True) == "LEFT JOIN"
        assert generator.generate_sql_join_type("cross") == "CROSS JOIN"

    def test_from_or_join(self, generator):
        assert generator.generate_from_table_or_table_join(User) == 'FROM "users"'
        assert generator.generate_from_table_or_table_join(Role, "LEFT JOIN") == 'LEFT JOIN "roles"'
        assert generator.generate_from_table_or_table_join(Role, Literal("NATURAL JOIN")) == 'NATURAL JOIN "roles"'

    def test_inner_join(self, generator):
        query = User.where().primary_role_id.eq(Role.where().id)
        result = generator.generate_select_query_join_tables(query)
        assert result == 'INNER JOIN "roles" ON "roles"."id" = "users"."primary_role_id"'

    def test_left_join(self, generator):
        query = User.where().left_join().primary_role_id.eq(Role.where().id)
        result = generator.generate_select_query_join_tables(query)
        assert result == 'LEFT JOIN "roles" ON "roles"."id" = "users"."primary_role_id"'

    def test_join_info(self, generator):
        query = User.where().primary_role_id.eq(Role.where().id)
        frame = next(query.get_condition_tree().iter_joins()).frame
        info = generator.get_join_table_info(
            frame, frame.value.get_operation_context(), "INNER JOIN", "User"
        )
        assert info.join_model is Role
        assert info.left_side_field is User.primary_role_id
        assert info.right_side_field is Role.id

    def test_join_against_root_model_swaps_sides(self, generator):
        query = Role.where().name.eq("admin").RoleThing.role_id.eq(Role.where().id)
        result = generator.generate_select_query_join_tables(query)
        assert result == 'INNER JOIN "role_things" ON "roles"."id" = "role_things"."role_id"'

    def test_joins_in_dependency_order(self, generator):
        query = (
            User.where()
            .id.eq(UserThing.where().user_id)
            .UserThing.role_thing_id.eq(RoleThing.where().id)
            .RoleThing.role_id.eq(Role.where().id)
            .Role.name.eq("admin")
        )
        result = generator.generate_select_query_join_tables(query)
        assert result == (
            'INNER JOIN "user_things" ON "user_things"."user_id" = "users"."id" '
            'INNER JOIN "role_things" ON "role_things"."id" = "user_things"."role_thing_id" '
            'INNER JOIN "roles" ON "roles"."id" = "role_things"."role_id"'
        )

    def test_join_declaration_order_does_not_matter(self, generator):
        forward = (
            User.where()
            .id.eq(UserThing.where().user_id)
            .UserThing.role_thing_id.eq(RoleThing.where().id)
            .RoleThing.role_id.eq(Role.where().id)
            .Role.name.eq("admin")
        )
        backward = (
            User.where()
            .RoleThing.role_id.eq(Role.where().id)
            .UserThing.role_thing_id.eq(RoleThing.where().id)
            .User.id.eq(UserThing.where().user_id)
            .Role.name.eq("admin")
        )
        assert generator.generate_select_statement(backward) == generator.generate_select_statement(forward)

    def test_multiple_conditions_on_one_join(self, generator):
        query = (
            User.where()
            .primary_role_id.eq(Role.where().id)
            .or_().id.eq(Role.where().id)
        )
        result = generator.generate_select_query_join_tables(query)
        assert result == (
            'INNER JOIN "roles" ON "roles"."id" = "users"."primary_role_id" '
            'OR "roles"."id" = "users"."id"'
        )
