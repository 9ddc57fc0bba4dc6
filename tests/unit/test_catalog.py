"""
DB Description Updater - Catalog Access Unit Tests

Tests catalog dialects with a mocked SQLAlchemy connection:
- SqlServerCatalog statements and bound parameters
- PostgresCatalog statements and identifier quoting
- CatalogReader / DescriptionWriter add-vs-update decision
- CatalogIOError wrapping of SQLAlchemy errors
- CatalogKey validation

Priority: P1 - Vendor protocol
"""

import pytest
from unittest.mock import Mock
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from db_description_updater.database.catalog import (
    CatalogDialect,
    CatalogReader,
    DescriptionWriter,
    PostgresCatalog,
    SqlServerCatalog,
    catalog_for,
)
from db_description_updater.database.errors import CatalogIOError
from db_description_updater.models import CatalogAction, CatalogKey, CatalogScope


TABLE_KEY = CatalogKey.for_table("Person")
COLUMN_KEY = CatalogKey.for_column("Person", "FirstName")


def _executed(connection, call_index=0):
    """Return (sql, params) of the n-th execute() call."""
    statement, params = connection.execute.call_args_list[call_index][0]
    return str(statement), params


class TestCatalogKey:
    """Test CatalogKey validation."""

    def test_table_key(self):
        assert TABLE_KEY.scope is CatalogScope.TABLE
        assert TABLE_KEY.column_name is None

    def test_column_key(self):
        assert COLUMN_KEY.scope is CatalogScope.COLUMN
        assert COLUMN_KEY.column_name == "FirstName"

    def test_column_key_requires_column_name(self):
        with pytest.raises(ValueError):
            CatalogKey(CatalogScope.COLUMN, "Person")

    def test_table_key_rejects_column_name(self):
        with pytest.raises(ValueError):
            CatalogKey(CatalogScope.TABLE, "Person", "FirstName")


class TestSqlServerCatalog:
    """Test the extended-property protocol."""

    def test_table_exists_query(self, mock_db_connection):
        mock_db_connection.execute.return_value.scalar.return_value = "People records"

        assert SqlServerCatalog().description_exists(mock_db_connection, TABLE_KEY) is True

        sql, params = _executed(mock_db_connection)
        assert "fn_listextendedproperty(:property_name, 'schema', :schema, 'table', NULL, NULL, NULL)" in sql
        assert "WHERE objname = :table" in sql
        assert params == {'property_name': 'MS_Description', 'schema': 'dbo', 'table': 'Person'}

    def test_column_exists_query(self, mock_db_connection):
        mock_db_connection.execute.return_value.scalar.return_value = None

        assert SqlServerCatalog().description_exists(mock_db_connection, COLUMN_KEY) is False

        sql, params = _executed(mock_db_connection)
        assert "'table', :table, 'column', NULL" in sql
        assert "WHERE objname = :column" in sql
        assert params['column'] == "FirstName"

    def test_add_table_description(self, mock_db_connection):
        SqlServerCatalog().add_description(mock_db_connection, TABLE_KEY, "People records")

        sql, params = _executed(mock_db_connection)
        assert "EXEC sp_addextendedproperty" in sql
        assert "@level1type = N'Table'" in sql
        assert "@level2type = NULL" in sql
        assert "@level2name = NULL" in sql
        assert params['description'] == "People records"
        assert params['table'] == "Person"
        assert 'column' not in params

    def test_update_column_description(self, mock_db_connection):
        SqlServerCatalog().update_description(mock_db_connection, COLUMN_KEY, "Given name")

        sql, params = _executed(mock_db_connection)
        assert "EXEC sp_updateextendedproperty" in sql
        assert "@level2type = N'Column'" in sql
        assert "@level2name = :column" in sql
        assert params['column'] == "FirstName"
        assert params['description'] == "Given name"

    def test_schema_and_property_name_are_configurable(self, mock_db_connection):
        catalog = SqlServerCatalog(schema="sales", property_name="Caption")
        catalog.add_description(mock_db_connection, TABLE_KEY, "People records")

        _, params = _executed(mock_db_connection)
        assert params['schema'] == "sales"
        assert params['property_name'] == "Caption"


class TestPostgresCatalog:
    """Test the COMMENT ON protocol."""

    @pytest.fixture
    def pg_connection(self, mock_db_connection):
        mock_db_connection.dialect = postgresql.dialect()
        return mock_db_connection

    def test_table_comment(self, pg_connection):
        PostgresCatalog().add_description(pg_connection, TABLE_KEY, "People records")

        sql, params = _executed(pg_connection)
        assert sql == 'COMMENT ON TABLE public."Person" IS :description'
        assert params == {'description': "People records"}

    def test_column_comment_update_is_same_statement(self, pg_connection):
        PostgresCatalog(schema="crm").update_description(pg_connection, COLUMN_KEY, "Given name")

        sql, _ = _executed(pg_connection)
        assert sql == 'COMMENT ON COLUMN crm."Person"."FirstName" IS :description'

    def test_column_exists_query(self, pg_connection):
        pg_connection.execute.return_value.scalar.return_value = "Given name"

        assert PostgresCatalog().description_exists(pg_connection, COLUMN_KEY) is True

        sql, params = _executed(pg_connection)
        assert "col_description" in sql
        assert params == {'relation': 'public."Person"', 'column': 'FirstName'}


class TestReaderAndWriter:
    """Test the add-vs-update decision and error wrapping."""

    def test_reader_delegates_to_dialect(self, mock_db_connection, mock_dialect):
        mock_dialect.description_exists.return_value = True

        assert CatalogReader(mock_db_connection, mock_dialect).exists(TABLE_KEY) is True
        mock_dialect.description_exists.assert_called_once_with(mock_db_connection, TABLE_KEY)

    def test_writer_adds_when_missing(self, mock_db_connection, mock_dialect):
        action = DescriptionWriter(mock_db_connection, mock_dialect).write(TABLE_KEY, "People records", exists=False)

        assert action is CatalogAction.ADD
        mock_dialect.add_description.assert_called_once_with(mock_db_connection, TABLE_KEY, "People records")
        mock_dialect.update_description.assert_not_called()

    def test_writer_updates_when_present(self, mock_db_connection, mock_dialect):
        action = DescriptionWriter(mock_db_connection, mock_dialect).write(COLUMN_KEY, "Given name", exists=True)

        assert action is CatalogAction.UPDATE
        mock_dialect.update_description.assert_called_once_with(mock_db_connection, COLUMN_KEY, "Given name")
        mock_dialect.add_description.assert_not_called()

    def test_reader_wraps_database_errors(self, mock_db_connection, mock_dialect):
        mock_dialect.description_exists.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(CatalogIOError) as exc_info:
            CatalogReader(mock_db_connection, mock_dialect).exists(COLUMN_KEY)

        assert "Person.FirstName" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_writer_wraps_database_errors(self, mock_db_connection, mock_dialect):
        mock_dialect.add_description.side_effect = OperationalError("EXEC", {}, Exception("denied"))

        with pytest.raises(CatalogIOError):
            DescriptionWriter(mock_db_connection, mock_dialect).write(TABLE_KEY, "People records", exists=False)


class TestCatalogFor:
    """Test dialect selection."""

    def test_mssql(self):
        catalog = catalog_for("mssql", "sales")

        assert isinstance(catalog, SqlServerCatalog)
        assert catalog.schema == "sales"

    def test_postgresql_defaults_to_public(self):
        catalog = catalog_for("postgresql")

        assert isinstance(catalog, PostgresCatalog)
        assert catalog.schema == "public"

    def test_unknown_dialect(self):
        with pytest.raises(ValueError):
            catalog_for("sqlite")

    def test_base_dialect_is_abstract(self, mock_db_connection):
        with pytest.raises(NotImplementedError):
            CatalogDialect().description_exists(mock_db_connection, TABLE_KEY)
