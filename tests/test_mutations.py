"""
INSERT / UPDATE / DELETE / TRUNCATE generation (sql/mutations.py)
"""

import pytest

from ormsql.config import ConnectionConfig
from ormsql.faults import PrimaryKeyRequiredFault
from ormsql.models import STRING, Field, NOW, Model, INTEGER
from ormsql.models.registry import ModelRegistry
from ormsql.query import Literal
from ormsql.sql import PreparedModels, SQLiteQueryGenerator

from tests.conftest import ExtendedUser, OTHER_USER_ID, Role, USER_ID, User


ESCAPE = "ESCAPE '\\'"


def make_user(user_id=USER_ID, first_name="Test", last_name="User"):
    return User(id=user_id, first_name=first_name, last_name=last_name)


# ============================================================================
# Defaults & preparation
# ============================================================================


class TestFieldDefaultValue:

    def test_no_default(self, generator):
        assert generator.get_field_default_value(User.first_name) is None

    def test_client_default_is_not_remote(self, generator):
        assert generator.get_field_default_value(User.id, "id", {"remote_only": True}) is None

    def test_remote_literal_default(self, generator):
        result = generator.get_field_default_value(ExtendedUser.created_at, "created_at", {"remote_only": True})
        assert result == "DEFAULT CURRENT_TIMESTAMP"

    def test_auto_increment_has_no_default_keyword(self, generator):
        assert generator.get_field_default_value(ExtendedUser.id, "id", {"remote_only": True}) == "AUTOINCREMENT"

    def test_plain_value(self, generator):
        field = Field(STRING(8), default="x")
        assert generator.get_field_default_value(field) == "DEFAULT 'x'"
        assert generator.get_field_default_value(field, None, {"use_default_keyword": False}) == "'x'"
        assert generator.get_field_default_value(field, None, {"escape": False}) == "DEFAULT x"

    def test_plain_value_not_applied_on_update(self, generator):
        field = Field(STRING(8), default="x")
        assert generator.get_field_default_value(field, None, {"is_update_operation": True}) is None

    def test_literal_inside_write_has_no_keyword(self, generator):
        result = generator.get_field_default_value(ExtendedUser.created_at, None, {"is_insert_operation": True})
        assert result == "CURRENT_TIMESTAMP"

    def test_raw_literals(self, generator):
        result = generator.get_field_default_value(ExtendedUser.created_at, None, {"raw_literals": True})
        assert isinstance(result, Literal)


class TestPrepareModels:

    def test_dicts_become_instances(self, generator):
        prepared = generator.prepare_models_for_operation(User, [{"first_name": "Bob"}])
        assert isinstance(prepared, PreparedModels)
        assert isinstance(prepared.models[0], User)
        assert prepared.models[0].first_name == "Bob"

    def test_dirty_fields_are_the_union_in_declaration_order(self, generator):
        first = make_user()
        first.clear_dirty()
        first.last_name = "Changed"
        second = User.from_database({"id": OTHER_USER_ID})
        second.first_name = "Bob"

        prepared = generator.prepare_models_for_operation(User, [first, second])
        assert [field.field_name for field in prepared.dirty_fields] == ["first_name", "last_name"]

    def test_skip_persisted(self, generator):
        persisted = User.from_database({"id": USER_ID})
        fresh = make_user(OTHER_USER_ID)
        prepared = generator.prepare_models_for_operation(User, [persisted, fresh, None], {"skip_persisted": True})
        assert prepared.models == [fresh]

    def test_prepared_models_pass_through(self, generator):
        prepared = PreparedModels([make_user()], [User.id])
        assert generator.prepare_models_for_operation(User, prepared) is prepared


# ============================================================================
# INSERT
# ============================================================================


class TestInsert:

    def test_field_values_for_one_model(self, generator):
        changes, values = generator.generate_insert_field_values_from_model(make_user(), User.get_fields(["id", "first_name", "last_name"]))
        assert values == f"'{USER_ID}','Test','User'"
        assert changes["first_name"].current == "Test"

    def test_field_values_for_partially_dirty_model(self, generator):
        model = make_user()
        model.clear_dirty("first_name", "last_name")
        _, values = generator.generate_insert_field_values_from_model(model, User.get_fields(["id", "first_name", "last_name"]))
        assert values == f"'{USER_ID}',,"

    def test_blank_value_in_postgres(self, postgres_generator):
        model = make_user()
        model.clear_dirty("first_name", "last_name")
        _, values = postgres_generator.generate_insert_field_values_from_model(
            model, User.get_fields(["id", "first_name", "last_name"])
        )
        assert values == f"'{USER_ID}',DEFAULT,DEFAULT"

    def test_insert_statement(self, generator):
        sql = generator.generate_insert_statement(User, make_user())
        assert sql == (
            f"INSERT INTO \"users\" (\"id\",\"first_name\",\"last_name\") "
            f"VALUES ('{USER_ID}','Test','User') RETURNING \"id\""
        )

    def test_insert_multiple_models(self, generator):
        sql = generator.generate_insert_statement(User, [make_user(OTHER_USER_ID, "Johnny", "Bob"), make_user()])
        assert sql == (
            f"INSERT INTO \"users\" (\"id\",\"first_name\",\"last_name\") "
            f"VALUES ('{OTHER_USER_ID}','Johnny','Bob'),('{USER_ID}','Test','User') RETURNING \"id\""
        )

    def test_insert_rows_on_new_lines(self):
        generator = SQLiteQueryGenerator(config=ConnectionConfig(newlines=True))
        sql = generator.generate_insert_statement(User, [make_user(OTHER_USER_ID, "Johnny", "Bob"), make_user()])
        assert f"VALUES ('{OTHER_USER_ID}','Johnny','Bob'),\n('{USER_ID}','Test','User')" in sql

    def test_insert_dicts(self, generator):
        sql = generator.generate_insert_statement(User, [{"id": USER_ID, "first_name": "Test", "last_name": "User"}])
        assert sql.startswith(f"INSERT INTO \"users\" (\"id\",\"first_name\",\"last_name\") VALUES ('{USER_ID}'")

    def test_nothing_to_insert(self, generator):
        assert generator.generate_insert_statement(User, []) == ""
        assert generator.generate_insert_statement(User, None) == ""

    def test_clean_models_are_not_inserted(self, generator):
        model = make_user()
        model.clear_dirty()
        assert generator.generate_insert_statement(User, [model]) == ""

    def test_remote_defaults_are_returned(self, postgres_generator):
        sql = postgres_generator.generate_insert_statement(ExtendedUser, ExtendedUser(email="a@example.com"))
        assert sql == (
            "INSERT INTO \"extended_users\" (\"email\") VALUES ('a@example.com') "
            "RETURNING \"id\",\"created_at\",\"updated_at\""
        )

    def test_base_dialect_has_no_returning(self):
        from ormsql.sql import SQLQueryGenerator

        sql = SQLQueryGenerator(config=ConnectionConfig(newlines=False)).generate_insert_statement(User, make_user())
        assert "RETURNING" not in sql


# ============================================================================
# UPDATE
# ============================================================================


class TestUpdate:

    def test_update_statement(self, generator):
        sql = generator.generate_update_statement(User, make_user())
        assert sql == (
            f"UPDATE \"users\" SET \"id\" = '{USER_ID}',\"first_name\" = 'Test',"
            f"\"last_name\" = 'User' RETURNING \"id\""
        )

    def test_update_on_new_lines(self):
        generator = SQLiteQueryGenerator(config=ConnectionConfig(newlines=True))
        sql = generator.generate_update_statement(User, make_user(), User.where().first_name.eq("Bob"))
        assert sql == (
            f"UPDATE \"users\" SET \n  \"id\" = '{USER_ID}',\n  \"first_name\" = 'Test',\n"
            f"  \"last_name\" = 'User'\nWHERE \"users\".\"first_name\" = 'Bob' RETURNING \"id\""
        )

    def test_update_with_where_order_limit_offset(self, generator):
        query = User.where().first_name.eq("Bob").order("first_name").limit(100).offset(10)
        sql = generator.generate_update_statement(User, make_user(), query)
        assert sql.endswith(
            "WHERE \"users\".\"first_name\" = 'Bob' RETURNING \"id\" "
            "ORDER BY \"users\".\"first_name\" ASC LIMIT 100 OFFSET 10"
        )

    def test_returning_follows_limit_outside_sqlite(self, postgres_generator):
        query = User.where().first_name.eq("Bob").order("first_name").limit(100).offset(10)
        sql = postgres_generator.generate_update_statement(User, make_user(), query)
        assert sql.endswith(
            "WHERE \"users\".\"first_name\" = 'Bob' ORDER BY \"users\".\"first_name\" ASC "
            "LIMIT 100 OFFSET 10 RETURNING \"id\""
        )

    def test_order_without_limit_is_dropped(self, generator):
        query = User.where().first_name.eq("Bob").order("first_name")
        sql = generator.generate_update_statement(User, make_user(), query)
        assert "ORDER BY" not in sql

    def test_update_from_dict(self, generator):
        sql = generator.generate_update_statement(User, {"id": USER_ID, "first_name": "Test", "last_name": "User"})
        assert sql == (
            f"UPDATE \"users\" SET \"id\" = '{USER_ID}',\"first_name\" = 'Test',"
            f"\"last_name\" = 'User' RETURNING \"id\""
        )

    def test_options_in_place_of_query(self, generator):
        sql = generator.generate_update_statement(User, make_user(), {"newlines": False})
        assert sql.startswith("UPDATE \"users\" SET \"id\"")

    def test_clean_model(self, generator):
        model = make_user()
        model.clear_dirty()
        assert generator.generate_update_statement(User, model) == ""
        assert generator.generate_update_statement(User, None) == ""

    def test_clean_model_with_on_update_default(self, generator, postgres_generator):
        model = ExtendedUser.from_database({"id": 1, "email": "a@example.com"})
        assert not model.is_dirty()
        assert model.get_dirty_fields(update=True) == {}
        assert generator.generate_update_statement(ExtendedUser, model) == ""
        assert postgres_generator.generate_update_statement(ExtendedUser, model) == ""

    def test_on_update_defaults(self, postgres_generator):
        model = ExtendedUser.from_database({"id": 1, "email": "a@example.com"})
        model.first_name = "Bob"
        sql = postgres_generator.generate_update_statement(ExtendedUser, model)
        assert sql == (
            "UPDATE \"extended_users\" SET \"first_name\" = 'Bob',\"updated_at\" = CURRENT_TIMESTAMP "
            "RETURNING \"id\",\"created_at\",\"updated_at\""
        )


# ============================================================================
# DELETE / TRUNCATE
# ============================================================================


class TestDelete:

    def test_delete_all(self, generator):
        assert generator.generate_delete_statement(User) == 'DELETE FROM "users"'

    def test_delete_with_where(self, generator):
        sql = generator.generate_delete_statement(User, User.where().id.eq("test"))
        assert sql == "DELETE FROM \"users\" WHERE \"users\".\"id\" = 'test' RETURNING \"id\""

    def test_order_limit_offset_without_conditions_is_ignored(self, generator):
        sql = generator.generate_delete_statement(User, User.where().order("first_name").limit(5))
        assert sql == 'DELETE FROM "users"'

    def test_delete_with_limit_and_offset(self, generator):
        query = User.where().first_name.like("%bob%").order("id").limit(50).offset(10)
        sql = generator.generate_delete_statement(User, query)
        assert sql == (
            f"DELETE FROM \"users\" WHERE \"users\".\"first_name\" LIKE '%bob%' {ESCAPE} "
            "RETURNING \"id\" ORDER BY \"users\".\"id\" ASC LIMIT 50 OFFSET 10"
        )

    def test_order_forces_a_limit(self, generator):
        query = User.where().first_name.like("%bob%").order("first_name")
        sql = generator.generate_delete_statement(User, query)
        assert sql.endswith('RETURNING "id" ORDER BY "users"."first_name" ASC LIMIT 4294967295 OFFSET 0')

    def test_default_order_is_not_applied(self, generator):
        sql = generator.generate_delete_statement(ExtendedUser, ExtendedUser.where().email.eq("a"))
        assert "ORDER BY" not in sql

    def test_delete_with_table_join(self, generator):
        query = User.where().primary_role_id.eq(Role.where().id).first_name.like("%bob%")
        sql = generator.generate_delete_statement(User, query)
        assert sql == (
            'DELETE FROM "users" AS "_users" WHERE EXISTS (SELECT 1 FROM "users" '
            'INNER JOIN "roles" ON "roles"."id" = "users"."primary_role_id" '
            f"WHERE \"users\".\"first_name\" LIKE '%bob%' {ESCAPE} AND \"users\".\"id\" = \"_users\".\"id\" "
            'LIMIT 1 OFFSET 0) RETURNING "_users"."id"'
        )

    def test_delete_models_by_primary_key(self, generator):
        sql = generator.generate_delete_statement(User, [make_user("a"), {"id": "b"}, "c"])
        assert sql == "DELETE FROM \"users\" WHERE \"users\".\"id\" IN ('a','b','c') RETURNING \"id\""

    def test_models_without_primary_key_values(self, generator):
        assert generator.generate_delete_statement(User, [{"first_name": "Bob"}]) == ""

    def test_model_without_primary_key_field(self, generator):
        class Tagless(Model):
            name = Field(STRING(32))

        try:
            with pytest.raises(PrimaryKeyRequiredFault):
                generator.generate_delete_statement(Tagless, [{"name": "a"}])
        finally:
            ModelRegistry.unregister("Tagless")


class TestTruncate:

    def test_sqlite_uses_delete(self, generator):
        assert generator.generate_truncate_table_statement(User) == 'DELETE FROM "users"'

    def test_postgres_truncates(self, postgres_generator):
        assert postgres_generator.generate_truncate_table_statement(User) == 'TRUNCATE TABLE "users"'


class TestReturningFields:

    def test_remote_literal_values_are_returned(self, generator):
        class Stamped(Model):
            id = Field(INTEGER, primary_key=True)
            touched_at = Field(STRING(32))
            seen_at = Field(STRING(32), default=NOW)

        try:
            model = Stamped.from_database({"id": 1})
            model.touched_at = Literal("CURRENT_TIMESTAMP", remote=True)
            sql = generator.generate_update_statement(Stamped, model)
            assert sql.endswith('RETURNING "id","touched_at","seen_at"')
        finally:
            ModelRegistry.unregister("Stamped")
