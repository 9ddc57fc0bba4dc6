"""
DB Description Updater - Schema Catalog Access
Reads and writes table/column descriptions stored by the database engine.

Dialects:
- SqlServerCatalog: MS_Description extended properties (sp_addextendedproperty /
  sp_updateextendedproperty, existence via fn_listextendedproperty)
- PostgresCatalog: COMMENT ON TABLE / COLUMN (existence via obj_description / col_description)

All statements run on the caller's connection, inside the caller's transaction.
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..models.entity import CatalogAction, CatalogKey, CatalogScope
from ..utils.config import DB_SCHEMA, DESCRIPTION_PROPERTY_NAME
from ..utils.logger import log_description_write
from .errors import CatalogIOError


class CatalogDialect:
    """Vendor-specific reads and writes of stored descriptions."""

    name = "catalog"

    def description_exists(self, connection: Connection, key: CatalogKey) -> bool:
        raise NotImplementedError

    def add_description(self, connection: Connection, key: CatalogKey, description: str) -> None:
        raise NotImplementedError

    def update_description(self, connection: Connection, key: CatalogKey, description: str) -> None:
        raise NotImplementedError


class SqlServerCatalog(CatalogDialect):
    """
    SQL Server extended properties.

    Args:
        schema: Level-0 schema name (default from DB_SCHEMA, normally 'dbo')
        property_name: Extended property key (default 'MS_Description')
    """

    name = "mssql"

    TABLE_EXISTS_SQL = """
        SELECT [value]
        FROM fn_listextendedproperty(:property_name, 'schema', :schema, 'table', NULL, NULL, NULL)
        WHERE objname = :table
    """

    COLUMN_EXISTS_SQL = """
        SELECT [value]
        FROM fn_listextendedproperty(:property_name, 'schema', :schema, 'table', :table, 'column', NULL)
        WHERE objname = :column
    """

    WRITE_SQL = """
        EXEC {procedure}
            @name = :property_name,
            @value = :description,
            @level0type = N'Schema',
            @level0name = :schema,
            @level1type = N'Table',
            @level1name = :table,
            @level2type = {level2type},
            @level2name = {level2name}
    """

    def __init__(self, schema: str = DB_SCHEMA, property_name: str = DESCRIPTION_PROPERTY_NAME):
        self.schema = schema
        self.property_name = property_name

    def description_exists(self, connection: Connection, key: CatalogKey) -> bool:
        sql = self.COLUMN_EXISTS_SQL if key.scope is CatalogScope.COLUMN else self.TABLE_EXISTS_SQL
        value = connection.execute(text(sql), self._params(key)).scalar()
        return value is not None

    def add_description(self, connection: Connection, key: CatalogKey, description: str) -> None:
        self._write(connection, 'sp_addextendedproperty', key, description)

    def update_description(self, connection: Connection, key: CatalogKey, description: str) -> None:
        self._write(connection, 'sp_updateextendedproperty', key, description)

    def write_statement(self, procedure: str, key: CatalogKey) -> str:
        """Build the EXEC statement for one add/update; column scope adds the level-2 qualifier."""
        if key.scope is CatalogScope.COLUMN:
            return self.WRITE_SQL.format(procedure=procedure, level2type="N'Column'", level2name=":column")
        return self.WRITE_SQL.format(procedure=procedure, level2type="NULL", level2name="NULL")

    def _write(self, connection: Connection, procedure: str, key: CatalogKey, description: str) -> None:
        params = self._params(key)
        params['description'] = description
        connection.execute(text(self.write_statement(procedure, key)), params)

    def _params(self, key: CatalogKey) -> dict:
        params = {
            'property_name': self.property_name,
            'schema': self.schema,
            'table': key.table_name,
        }
        if key.scope is CatalogScope.COLUMN:
            params['column'] = key.column_name
        return params


class PostgresCatalog(CatalogDialect):
    """
    PostgreSQL object comments.

    Add and update are the same statement; COMMENT ON replaces any previous comment.
    The description is a bound parameter, which needs a driver that interpolates
    parameters client-side (psycopg2).
    """

    name = "postgresql"

    TABLE_EXISTS_SQL = """
        SELECT obj_description(CAST(:relation AS regclass), 'pg_class')
    """

    COLUMN_EXISTS_SQL = """
        SELECT col_description(a.attrelid, a.attnum)
        FROM pg_attribute a
        WHERE a.attrelid = CAST(:relation AS regclass)
          AND a.attname = :column
          AND NOT a.attisdropped
    """

    def __init__(self, schema: str = 'public'):
        self.schema = schema

    def description_exists(self, connection: Connection, key: CatalogKey) -> bool:
        params = {'relation': self._relation(connection, key)}
        sql = self.TABLE_EXISTS_SQL
        if key.scope is CatalogScope.COLUMN:
            sql = self.COLUMN_EXISTS_SQL
            params['column'] = key.column_name
        return connection.execute(text(sql), params).scalar() is not None

    def add_description(self, connection: Connection, key: CatalogKey, description: str) -> None:
        self._comment(connection, key, description)

    def update_description(self, connection: Connection, key: CatalogKey, description: str) -> None:
        self._comment(connection, key, description)

    def _relation(self, connection: Connection, key: CatalogKey) -> str:
        quote = connection.dialect.identifier_preparer.quote
        return f"{quote(self.schema)}.{quote(key.table_name)}"

    def _comment(self, connection: Connection, key: CatalogKey, description: str) -> None:
        target = f"TABLE {self._relation(connection, key)}"
        if key.scope is CatalogScope.COLUMN:
            quote = connection.dialect.identifier_preparer.quote
            target = f"COLUMN {self._relation(connection, key)}.{quote(key.column_name)}"
        connection.execute(text(f"COMMENT ON {target} IS :description"), {'description': description})


class CatalogReader:
    """
    Checks whether a description is already stored for a table or column.

    Shares the coordinator's connection so the read and the following write
    see the same transaction.
    """

    def __init__(self, connection: Connection, dialect: CatalogDialect):
        self.connection = connection
        self.dialect = dialect

    def exists(self, key: CatalogKey) -> bool:
        """
        Raises:
            CatalogIOError: If the catalog query fails
        """
        try:
            return self.dialect.description_exists(self.connection, key)
        except SQLAlchemyError as e:
            raise CatalogIOError(f"Failed to read description for {_describe(key)}: {e}") from e


class DescriptionWriter:
    """Issues exactly one add or update per description."""

    def __init__(self, connection: Connection, dialect: CatalogDialect):
        self.connection = connection
        self.dialect = dialect

    def write(self, key: CatalogKey, description: str, exists: bool) -> CatalogAction:
        """
        Store description for key: add when nothing is stored yet, update otherwise.

        Returns:
            The action taken

        Raises:
            CatalogIOError: If the catalog write fails
        """
        action = CatalogAction.UPDATE if exists else CatalogAction.ADD
        try:
            if action is CatalogAction.UPDATE:
                self.dialect.update_description(self.connection, key, description)
            else:
                self.dialect.add_description(self.connection, key, description)
        except SQLAlchemyError as e:
            raise CatalogIOError(
                f"Failed to {action.value} description for {_describe(key)}: {e}"
            ) from e

        log_description_write(key.scope.value, key.table_name, key.column_name, action.value)
        return action


def _describe(key: CatalogKey) -> str:
    if key.column_name is None:
        return f"table '{key.table_name}'"
    return f"column '{key.table_name}.{key.column_name}'"


def catalog_for(dialect_name: str, schema: Optional[str] = None) -> CatalogDialect:
    """
    Build the catalog dialect for a database dialect name.

    Raises:
        ValueError: If the dialect has no catalog support
    """
    if dialect_name == SqlServerCatalog.name:
        return SqlServerCatalog(schema=schema or DB_SCHEMA)
    if dialect_name == PostgresCatalog.name:
        return PostgresCatalog(schema=schema or 'public')
    raise ValueError(f"No description catalog for database dialect '{dialect_name}'")
