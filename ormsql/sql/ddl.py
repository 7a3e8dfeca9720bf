"""
ormsql DDL generators — tables, columns, indexes and foreign keys.

    CREATE TABLE IF NOT EXISTS "roles" (
      "id" VARCHAR(36) PRIMARY KEY NOT NULL,
      "name" VARCHAR(64)
    )
    CREATE INDEX IF NOT EXISTS "idx_roles_name" ON "roles" ("name")

Index statements are not part of CREATE TABLE; they form the "outer tail"
that the connection runs after the table exists.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Type, Union, TYPE_CHECKING

from ..faults import FieldNotFoundFault
from ..models.fields import Field
from ..query.literals import LiteralBase

if TYPE_CHECKING:
    from ..models.base import Model

logger = logging.getLogger("ormsql.sql.generator")

__all__ = ["DDLMixin"]


def _to_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class DDLMixin:
    """Schema statement generation for ``SQLQueryGenerator``."""

    supports_cascade = True

    def generate_cascade_flag(self, options: Optional[Dict[str, Any]] = None) -> str:
        """``CASCADE``/``RESTRICT`` suffix for DROP INDEX and DROP COLUMN."""
        options = options or {}
        return "CASCADE" if options.get("cascade", True) is not False else "RESTRICT"

    # ── Indexes ──────────────────────────────────────────────────────

    def generate_index_name(
        self,
        Model: Type[Model],
        index_field_names: Iterable[str],
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        column_names = []
        for field_name in index_field_names:
            field = Model.get_field(field_name)
            if field is None:
                raise FieldNotFoundFault(Model.get_model_name(), field_name)
            column_names.append(field.column_name)

        table_name = Model.get_table_name(self.connection)
        return self.escape_id(f"idx_{table_name}_{'_'.join(sorted(column_names))}")

    def generate_create_index_statement(
        self,
        Model: Type[Model],
        index_field_names: Union[str, Iterable[str]],
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        field_names = [name for name in _to_list(index_field_names) if isinstance(name, str) and name]
        if not field_names:
            return ""

        flags = []
        if options.get("concurrently"):
            flags.append("CONCURRENTLY")
        if options.get("if_not_exists"):
            flags.append("IF NOT EXISTS")

        columns = ",".join(
            self.get_escaped_column_name(Model, Model.get_field(name) or name, {"column_name_only": True})
            for name in field_names
        )
        index_name = self.generate_index_name(Model, field_names, options)
        flag_text = f" {' '.join(flags)}" if flags else ""

        return (
            f"CREATE INDEX{flag_text} {index_name} ON "
            f"{self.get_escaped_table_name(Model, options)} ({columns})"
        )

    def generate_drop_index_statement(
        self,
        Model: Type[Model],
        index_field_names: Union[str, Iterable[str]],
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        field_names = [name for name in _to_list(index_field_names) if isinstance(name, str) and name]
        if not field_names:
            return ""

        flags = []
        if options.get("concurrently"):
            flags.append("CONCURRENTLY")
        if options.get("if_exists"):
            flags.append("IF EXISTS")

        flag_text = f" {' '.join(flags)}" if flags else ""
        sql = f"DROP INDEX{flag_text} {self.generate_index_name(Model, field_names, options)}"

        suffix = self.generate_cascade_flag(options)
        return f"{sql} {suffix}" if suffix else sql

    def generate_column_indexes(
        self,
        Model: Type[Model],
        field: Field,
        options: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """One CREATE INDEX per entry of ``field.index``."""
        if not field.index:
            return []

        statements = []
        for entry in _to_list(field.index):
            if entry is True:
                names = [field.field_name]
            elif entry:
                names = [field.field_name] + _to_list(entry)
            else:
                continue

            statement = self.generate_create_index_statement(Model, names, options)
            if statement:
                statements.append(statement)

        return statements

    # ── Foreign keys ─────────────────────────────────────────────────

    def generate_foreign_key_constraint(
        self,
        field: Field,
        target_field: Field,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        fk_type = field.type
        sql = (
            f"FOREIGN KEY({self.get_escaped_column_name(field.model, field, {'column_name_only': True})}) "
            f"REFERENCES {self.get_escaped_table_name(target_field.model, options)}"
            f"({self.get_escaped_column_name(target_field.model, target_field, {'column_name_only': True})})"
        )

        if getattr(fk_type, "deferred", False):
            sql += " DEFERRABLE INITIALLY DEFERRED"
        if getattr(fk_type, "on_delete", None):
            sql += f" ON DELETE {fk_type.on_delete.upper()}"
        if getattr(fk_type, "on_update", None):
            sql += f" ON UPDATE {fk_type.on_update.upper()}"

        return sql

    def generate_create_table_statement_inner_tail(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> List[str]:
        constraints = []
        for field in Model.iterate_fields():
            if field.type.is_virtual() or not field.type.is_foreign_key():
                continue

            target_field = field.type.get_target_field(self.connection)
            constraints.append(self.generate_foreign_key_constraint(field, target_field, options))

        return constraints

    def generate_create_table_statement_outer_tail(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> List[str]:
        sub_options = self.stack_assign(options, {"if_not_exists": True})
        statements: List[str] = []

        for field in Model.iterate_fields():
            if field.type.is_virtual() or field.type.is_foreign_key() or not field.index:
                continue

            for statement in self.generate_column_indexes(Model, field, sub_options):
                if statement not in statements:
                    statements.append(statement)

        return statements

    # ── Tables & columns ─────────────────────────────────────────────

    def generate_column_declaration_statement(
        self,
        Model: Type[Model],
        field: Field,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        options = options or {}
        default_value = self.get_field_default_value(field, field.field_name, {"remote_only": True})
        constraints: List[str] = []

        if field.primary_key:
            if LiteralBase.is_literal(field.primary_key):
                constraints.append(field.primary_key.to_string(self))
            else:
                constraints.append("PRIMARY KEY")

            if default_value != "AUTOINCREMENT":
                constraints.append("NOT NULL")
        else:
            if field.unique:
                if LiteralBase.is_literal(field.unique):
                    constraints.append(field.unique.to_string(self))
                else:
                    constraints.append("UNIQUE")

            if field.allow_null is False:
                constraints.append("NOT NULL")

        if default_value and not (default_value == "AUTOINCREMENT" and options.get("no_auto_increment_default")):
            constraints.append(default_value)

        column = self.get_escaped_column_name(Model, field, {"column_name_only": True})
        column_type = field.type.to_connection_type(self, create_table=True, default_value=default_value)
        constraint_text = " ".join(constraints)

        return f"{column} {column_type} {constraint_text}" if constraint_text else f"{column} {column_type}"

    def generate_create_table_statement(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        definitions = [
            self.generate_column_declaration_statement(Model, field, options)
            for field in Model.iterate_fields()
            if not field.type.is_virtual()
        ]
        definitions.extend(self.generate_create_table_statement_inner_tail(Model, options))

        if_not_exists = "IF NOT EXISTS " if options.get("if_not_exists") else ""
        body = ",\n  ".join(definitions)
        return f"CREATE TABLE {if_not_exists}{self.get_escaped_table_name(Model, options)} (\n  {body}\n)"

    def generate_drop_table_statement(self, Model: Type[Model], options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        if_exists = "IF EXISTS " if options.get("if_exists") else ""
        sql = f"DROP TABLE {if_exists}{self.get_escaped_table_name(Model, options)}"

        if self.supports_cascade and options.get("cascade", True) is not False:
            sql += " CASCADE"
        return sql

    def generate_alter_table_statement(
        self,
        Model: Type[Model],
        new_attributes: Optional[Dict[str, Any]],
        options: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        if not new_attributes:
            return []

        statements = []
        new_table_name = new_attributes.get("table_name")
        if new_table_name and new_table_name != Model.get_table_name(self.connection):
            statements.append(
                f"ALTER TABLE {self.get_escaped_table_name(Model, options)} RENAME TO {self.escape_id(new_table_name)}"
            )

        return statements

    def generate_drop_column_statement(self, field: Field, options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        Model = field.model
        if_exists = " IF EXISTS" if options.get("if_exists") else ""
        column = self.get_escaped_column_name(Model, field, {"column_name_only": True})
        sql = f"ALTER TABLE {self.get_escaped_table_name(Model, options)} DROP COLUMN{if_exists} {column}"

        suffix = self.generate_cascade_flag(options)
        return f"{sql} {suffix}" if suffix else sql

    def generate_add_column_statement(self, field: Field, options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        Model = field.model
        if_not_exists = " IF NOT EXISTS" if options.get("if_not_exists") else ""
        declaration = self.generate_column_declaration_statement(Model, field, options)
        return f"ALTER TABLE {self.get_escaped_table_name(Model, options)} ADD COLUMN{if_not_exists} {declaration}"

    def _column_index_map(self, Model: Type[Model], field: Field, options: Dict[str, Any]) -> Dict[str, List[str]]:
        index_map: Dict[str, List[str]] = {}
        for entry in _to_list(field.index) if field.index else []:
            if entry is True:
                names = [field.field_name]
            elif entry:
                names = [field.field_name] + _to_list(entry)
            else:
                continue
            index_map[self.generate_index_name(Model, names, options)] = names
        return index_map

    def generate_alter_column_statements(
        self,
        field: Field,
        new_attributes: Union[Field, Dict[str, Any], None],
        options: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """
        Statements that turn ``field`` into ``new_attributes``.

        Emitted in order: nullability, type, default, primary key, unique,
        index additions, index removals, rename.
        """
        if not new_attributes:
            return []

        options = options or {}
        Model = field.model

        if isinstance(new_attributes, Field):
            new_field = new_attributes
        else:
            new_field = field.clone(**new_attributes)
        if new_field.model is None:
            new_field.set_model(Model)

        table = self.get_escaped_table_name(Model, options)
        column = self.get_escaped_column_name(Model, field, {"column_name_only": True})
        prefix = f"ALTER TABLE {table} ALTER COLUMN {column}"
        statements: List[str] = []

        if bool(new_field.allow_null) != bool(field.allow_null):
            statements.append(f"{prefix} {'DROP' if new_field.allow_null else 'SET'} NOT NULL")

        default_options = {"use_default_keyword": False, "escape": True, "remote_only": True}
        current_default = self.get_field_default_value(field, field.field_name, default_options)
        new_default = self.get_field_default_value(new_field, new_field.field_name, default_options)

        current_type = field.type.to_connection_type(self, create_table=True, default_value=current_default)
        new_type = new_field.type.to_connection_type(self, create_table=True, default_value=new_default)
        if current_type != new_type:
            statements.append(f"{prefix} SET DATA TYPE {new_type}")

        if current_default != new_default:
            if new_default is None:
                statements.append(f"{prefix} DROP DEFAULT")
            else:
                statements.append(f"{prefix} SET DEFAULT {new_default}")

        if bool(new_field.primary_key) != bool(field.primary_key):
            statements.append(f"{prefix} {'ADD' if new_field.primary_key else 'DROP'} CONSTRAINT PRIMARY KEY")

        if bool(new_field.unique) != bool(field.unique):
            statements.append(f"{prefix} {'ADD' if new_field.unique else 'DROP'} CONSTRAINT UNIQUE")

        if new_field.index != field.index:
            current_indexes = self._column_index_map(Model, field, options)
            new_indexes = self._column_index_map(Model, new_field, options)

            for name, names in new_indexes.items():
                if name not in current_indexes:
                    statements.append(self.generate_create_index_statement(Model, names, options))

            for name, names in current_indexes.items():
                if name not in new_indexes:
                    statements.append(self.generate_drop_index_statement(Model, names, options))

        if new_field.column_name != field.column_name:
            new_column = self.escape_id(new_field.db_column or new_field.field_name)
            statements.append(f"ALTER TABLE {table} RENAME COLUMN {column} TO {new_column}")

        logger.debug(f"Generated {len(statements)} alter statements for '{field.get_qualified_name()}'")
        return statements
