"""
Schema statements (sql/ddl.py)

Tests CREATE/DROP TABLE, column declarations, indexes, foreign keys and
ALTER TABLE / ALTER COLUMN generation for the SQLite and PostgreSQL
dialects.
"""

import pytest

from ormsql.faults import FieldNotFoundFault
from ormsql.models import STRING, Field

from tests.conftest import ExtendedUser, Role, User, UserThing


# ============================================================================
# CREATE TABLE
# ============================================================================


class TestCreateTable:

    def test_simple_table(self, generator):
        assert generator.generate_create_table_statement(Role) == (
            'CREATE TABLE "roles" (\n'
            '  "id" VARCHAR(36) PRIMARY KEY NOT NULL,\n'
            '  "name" VARCHAR(64)\n'
            ')'
        )

    def test_if_not_exists(self, generator):
        sql = generator.generate_create_table_statement(Role, {"if_not_exists": True})
        assert sql.startswith('CREATE TABLE IF NOT EXISTS "roles" (')

    def test_foreign_keys_follow_columns(self, generator):
        sql = generator.generate_create_table_statement(User)
        assert sql == (
            'CREATE TABLE "users" (\n'
            '  "id" VARCHAR(36) PRIMARY KEY NOT NULL,\n'
            '  "first_name" VARCHAR(64),\n'
            '  "last_name" VARCHAR(64),\n'
            '  "primary_role_id" VARCHAR(36),\n'
            '  FOREIGN KEY("primary_role_id") REFERENCES "roles"("id") ON DELETE SET NULL ON UPDATE SET NULL\n'
            ')'
        )

    def test_virtual_fields_have_no_column(self, generator):
        assert "primary_role\"" not in generator.generate_create_table_statement(User)

    def test_sqlite_defaults_and_constraints(self, generator):
        sql = generator.generate_create_table_statement(ExtendedUser)
        assert '"id" INTEGER PRIMARY KEY AUTOINCREMENT,' in sql
        assert '"email" VARCHAR(256) UNIQUE NOT NULL,' in sql
        assert '"is_over_21" BOOLEAN,' in sql
        assert '"created_at" DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,' in sql
        assert '"updated_at" DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP\n' in sql

    def test_postgres_serial_and_timestamp(self, postgres_generator):
        sql = postgres_generator.generate_create_table_statement(ExtendedUser)
        assert '"id" SERIAL PRIMARY KEY,' in sql
        assert '"created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,' in sql

    def test_postgres_uuid_type(self, postgres_generator):
        sql = postgres_generator.generate_create_table_statement(Role)
        assert '"id" UUID PRIMARY KEY NOT NULL' in sql


class TestCreateTableTails:

    def test_inner_tail_lists_foreign_keys(self, generator):
        result = generator.generate_create_table_statement_inner_tail(UserThing)
        assert result == [
            'FOREIGN KEY("user_id") REFERENCES "users"("id") ON DELETE CASCADE ON UPDATE CASCADE',
            'FOREIGN KEY("role_thing_id") REFERENCES "role_things"("id") ON DELETE CASCADE ON UPDATE CASCADE',
        ]

    def test_outer_tail_creates_indexes(self, generator):
        assert generator.generate_create_table_statement_outer_tail(Role) == [
            'CREATE INDEX IF NOT EXISTS "idx_roles_name" ON "roles" ("name")',
        ]

    def test_foreign_key_fields_are_not_indexed(self, generator):
        assert generator.generate_create_table_statement_outer_tail(UserThing) == []

    def test_outer_tail_for_every_indexed_field(self, generator):
        result = generator.generate_create_table_statement_outer_tail(ExtendedUser)
        assert result == [
            'CREATE INDEX IF NOT EXISTS "idx_extended_users_first_name" ON "extended_users" ("first_name")',
            'CREATE INDEX IF NOT EXISTS "idx_extended_users_last_name" ON "extended_users" ("last_name")',
            'CREATE INDEX IF NOT EXISTS "idx_extended_users_created_at" ON "extended_users" ("created_at")',
            'CREATE INDEX IF NOT EXISTS "idx_extended_users_updated_at" ON "extended_users" ("updated_at")',
        ]


# ============================================================================
# Indexes
# ============================================================================


class TestIndexes:

    def test_index_name_uses_sorted_columns(self, generator):
        assert generator.generate_index_name(User, ["last_name", "first_name"]) == '"idx_users_first_name_last_name"'

    def test_index_name_rejects_unknown_fields(self, generator):
        with pytest.raises(FieldNotFoundFault):
            generator.generate_index_name(User, ["nickname"])

    def test_create_index(self, generator):
        assert generator.generate_create_index_statement(User, "first_name") == (
            'CREATE INDEX "idx_users_first_name" ON "users" ("first_name")'
        )

    def test_combo_index(self, generator):
        sql = generator.generate_create_index_statement(User, ["last_name", "first_name"], {"if_not_exists": True})
        assert sql == (
            'CREATE INDEX IF NOT EXISTS "idx_users_first_name_last_name" ON "users" ("last_name","first_name")'
        )

    def test_concurrently(self, postgres_generator):
        sql = postgres_generator.generate_create_index_statement(User, "first_name", {"concurrently": True})
        assert sql.startswith('CREATE INDEX CONCURRENTLY "idx_users_first_name"')

    def test_no_fields_no_statement(self, generator):
        assert generator.generate_create_index_statement(User, []) == ""
        assert generator.generate_drop_index_statement(User, None) == ""

    def test_drop_index_sqlite(self, generator):
        assert generator.generate_drop_index_statement(User, "first_name") == 'DROP INDEX "idx_users_first_name"'

    def test_drop_index_postgres(self, postgres_generator):
        assert postgres_generator.generate_drop_index_statement(User, "first_name") == (
            'DROP INDEX "idx_users_first_name" CASCADE'
        )
        assert postgres_generator.generate_drop_index_statement(User, "first_name", {"cascade": False}) == (
            'DROP INDEX "idx_users_first_name" RESTRICT'
        )

    def test_drop_index_if_exists(self, generator):
        sql = generator.generate_drop_index_statement(User, "first_name", {"if_exists": True})
        assert sql == 'DROP INDEX IF EXISTS "idx_users_first_name"'

    def test_column_indexes_with_combo_entries(self, generator):
        field = Field(STRING(64), index=[True, "last_name"])
        field.field_name = "first_name"
        field.set_model(User)
        assert generator.generate_column_indexes(User, field) == [
            'CREATE INDEX "idx_users_first_name" ON "users" ("first_name")',
            'CREATE INDEX "idx_users_first_name_last_name" ON "users" ("first_name","last_name")',
        ]


# ============================================================================
# DROP / ALTER
# ============================================================================


class TestDropTable:

    def test_sqlite(self, generator):
        assert generator.generate_drop_table_statement(User) == 'DROP TABLE "users"'

    def test_sqlite_if_exists(self, generator):
        assert generator.generate_drop_table_statement(User, {"if_exists": True}) == 'DROP TABLE IF EXISTS "users"'

    def test_postgres_cascades(self, postgres_generator):
        assert postgres_generator.generate_drop_table_statement(User) == 'DROP TABLE "users" CASCADE'
        assert postgres_generator.generate_drop_table_statement(User, {"cascade": False}) == 'DROP TABLE "users"'


class TestAlterTable:

    def test_rename(self, generator):
        result = generator.generate_alter_table_statement(User, {"table_name": "people"})
        assert result == ['ALTER TABLE "users" RENAME TO "people"']

    def test_same_name_is_a_no_op(self, generator):
        assert generator.generate_alter_table_statement(User, {"table_name": "users"}) == []
        assert generator.generate_alter_table_statement(User, None) == []


class TestColumns:

    def test_add_column(self, generator):
        assert generator.generate_add_column_statement(User.first_name) == (
            'ALTER TABLE "users" ADD COLUMN "first_name" VARCHAR(64)'
        )

    def test_drop_column_sqlite(self, generator):
        assert generator.generate_drop_column_statement(User.first_name) == (
            'ALTER TABLE "users" DROP COLUMN "first_name"'
        )

    def test_drop_column_postgres(self, postgres_generator):
        sql = postgres_generator.generate_drop_column_statement(User.first_name, {"if_exists": True})
        assert sql == 'ALTER TABLE "users" DROP COLUMN IF EXISTS "first_name" CASCADE'


class TestAlterColumn:

    PREFIX = 'ALTER TABLE "users" ALTER COLUMN "first_name"'

    def test_nullability(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"allow_null": False})
        assert result == [f"{self.PREFIX} SET NOT NULL"]

    def test_type(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"type": STRING(128)})
        assert result == [f"{self.PREFIX} SET DATA TYPE VARCHAR(128)"]

    def test_default(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"default": "x"})
        assert result == [f"{self.PREFIX} SET DEFAULT 'x'"]

    def test_unique(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"unique": True})
        assert result == [f"{self.PREFIX} ADD CONSTRAINT UNIQUE"]

    def test_rename(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"column_name": "given_name"})
        assert result == ['ALTER TABLE "users" RENAME COLUMN "first_name" TO "given_name"']

    def test_drop_index(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"index": False})
        assert result == ['DROP INDEX "idx_users_first_name"']

    def test_add_combo_index(self, generator):
        result = generator.generate_alter_column_statements(User.first_name, {"index": [True, "last_name"]})
        assert result == ['CREATE INDEX "idx_users_first_name_last_name" ON "users" ("first_name","last_name")']

    def test_several_changes_in_order(self, generator):
        result = generator.generate_alter_column_statements(
            User.first_name,
            {"allow_null": False, "type": STRING(128), "column_name": "given_name"},
        )
        assert result == [
            f"{self.PREFIX} SET NOT NULL",
            f"{self.PREFIX} SET DATA TYPE VARCHAR(128)",
            'ALTER TABLE "users" RENAME COLUMN "first_name" TO "given_name"',
        ]

    def test_nothing_to_change(self, generator):
        assert generator.generate_alter_column_statements(User.first_name, {}) == []
        assert generator.generate_alter_column_statements(User.first_name, {"allow_null": True}) == []

    def test_original_field_is_untouched(self, generator):
        generator.generate_alter_column_statements(User.first_name, {"allow_null": False})
        assert User.first_name.allow_null is True
