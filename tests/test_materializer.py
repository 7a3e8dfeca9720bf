"""
Result materialization (connection/materializer.py)
"""

import pytest

from ormsql.connection import QueryResult
from ormsql.connection.materializer import (
    ModelDataMap,
    apply_write_results,
    build_model_graph,
    group_rows_by_model,
)

from tests.conftest import ExtendedUser, OTHER_USER_ID, ROLE_ID, Role, USER_ID, User


COLUMNS = ["User:id", "User:first_name", "Role:id", "Role:name"]


def joined_query():
    return User.where().primary_role_id.eq(Role.where().id)


# ============================================================================
# Grouping
# ============================================================================


class TestGroupRowsByModel:

    def test_empty_result(self):
        data_map = group_rows_by_model(User.where(), QueryResult(COLUMNS, []))
        assert data_map.root_model_name == "User"
        assert data_map.is_empty()
        assert group_rows_by_model(User.where(), None).is_empty()

    def test_rows_split_per_model(self):
        result = QueryResult(COLUMNS, [[USER_ID, "Bob", ROLE_ID, "admin"]])
        data_map = group_rows_by_model(joined_query(), result)
        assert data_map.models == {
            "User": [{"id": USER_ID, "first_name": "Bob"}],
            "Role": [{"id": ROLE_ID, "name": "admin"}],
        }
        assert data_map.relations == {0: {"Role": [0]}}

    def test_identical_models_share_a_slot(self):
        result = QueryResult(
            COLUMNS,
            [
                [USER_ID, "Bob", ROLE_ID, "admin"],
                [OTHER_USER_ID, "Ann", ROLE_ID, "admin"],
                [USER_ID, "Bob", ROLE_ID, "admin"],
            ],
        )
        data_map = group_rows_by_model(joined_query(), result)
        assert len(data_map.models["User"]) == 2
        assert len(data_map.models["Role"]) == 1
        assert data_map.relations == {0: {"Role": [0]}, 1: {"Role": [0]}}

    def test_empty_outer_join_side_is_skipped(self):
        result = QueryResult(COLUMNS, [[USER_ID, "Bob", None, None]])
        data_map = group_rows_by_model(joined_query(), result)
        assert "Role" not in data_map.models
        assert data_map.relations == {}

    def test_unknown_columns_are_ignored(self):
        result = QueryResult(["User:id", "COUNT(*)", "Ghost:id"], [[USER_ID, 3, "x"]])
        data_map = group_rows_by_model(User.where(), result)
        assert data_map.models == {"User": [{"id": USER_ID}]}

    def test_models_without_primary_key_are_keyed_by_values(self):
        result = QueryResult(["User:first_name"], [["Bob"], ["Bob"], ["Ann"]])
        data_map = group_rows_by_model(User.where(), result)
        assert data_map.models["User"] == [{"first_name": "Bob"}, {"first_name": "Ann"}]


# ============================================================================
# Graph building
# ============================================================================


class TestBuildModelGraph:

    def test_empty_map(self):
        assert build_model_graph(User.where(), ModelDataMap("User")) == []

    def test_instances_are_persisted_and_clean(self):
        result = QueryResult(COLUMNS, [[USER_ID, "Bob", ROLE_ID, "admin"]])
        query = joined_query()
        users = build_model_graph(query, group_rows_by_model(query, result))

        assert len(users) == 1
        user = users[0]
        assert isinstance(user, User)
        assert user.id == USER_ID
        assert user.first_name == "Bob"
        assert user.is_persisted()
        assert not user.is_dirty()

    def test_related_models_are_attached(self):
        result = QueryResult(
            COLUMNS,
            [
                [USER_ID, "Bob", ROLE_ID, "admin"],
                [OTHER_USER_ID, "Ann", ROLE_ID, "admin"],
            ],
        )
        query = joined_query()
        users = build_model_graph(query, group_rows_by_model(query, result))

        assert [user.first_name for user in users] == ["Bob", "Ann"]
        assert isinstance(users[0].primary_role, Role)
        assert users[0].primary_role.name == "admin"
        assert users[0].primary_role is users[1].primary_role

    def test_on_each_model_may_replace_instances(self):
        seen = []

        def on_each_model(Model, instance):
            seen.append(Model.get_model_name())
            if Model is Role:
                instance.name = "replaced"
                return instance
            return None

        result = QueryResult(COLUMNS, [[USER_ID, "Bob", ROLE_ID, "admin"]])
        query = joined_query()
        users = build_model_graph(query, group_rows_by_model(query, result), on_each_model)

        assert sorted(seen) == ["Role", "User"]
        assert users[0].primary_role.name == "replaced"
        assert not users[0].primary_role.is_dirty()


# ============================================================================
# Write results
# ============================================================================


class TestApplyWriteResults:

    def test_returned_values_are_copied_row_by_row(self):
        first = ExtendedUser(email="a@example.com")
        second = ExtendedUser(email="b@example.com")
        result = QueryResult(["id", "created_at"], [[1, "2020-01-01"], [2, "2020-01-02"]])

        apply_write_results(ExtendedUser, [first, second], result)

        assert (first.id, second.id) == (1, 2)
        assert second.created_at == "2020-01-02"
        assert first.is_persisted() and second.is_persisted()

    def test_no_columns_leaves_models_alone(self):
        model = ExtendedUser(email="a@example.com")
        apply_write_results(ExtendedUser, [model], QueryResult([], [], changes=1))
        assert model.id is None
        assert not model.is_persisted()

    @pytest.mark.parametrize("result", [None, QueryResult([], [])])
    def test_returns_models(self, result):
        models = [ExtendedUser(email="a@example.com")]
        assert apply_write_results(ExtendedUser, models, result) is models
