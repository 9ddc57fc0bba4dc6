"""
Integration test fixtures and configuration.

Provides an in-memory SQLite database with a side-table description catalog,
so whole reconciliation runs (scan, resolve, read, write, commit/rollback)
execute against a real transactional database.

Fixture Types:
- sqlite_engine: Fresh in-memory database per test
- side_table_catalog: CatalogDialect storing descriptions in extended_properties
- stored_descriptions: Reads back everything committed to the catalog
"""

import pytest
from sqlalchemy import Column, MetaData, String, Table, UniqueConstraint, create_engine, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from db_description_updater.database.catalog import CatalogDialect
from db_description_updater.models import CatalogScope


# =============================================================================
# Side-Table Catalog
# =============================================================================

catalog_metadata = MetaData()

extended_properties = Table(
    "extended_properties",
    catalog_metadata,
    Column("scope", String(10), nullable=False),
    Column("table_name", String(128), nullable=False),
    # '' for table scope; SQLite treats NULLs as distinct in UNIQUE constraints
    Column("column_name", String(128), nullable=False, default=''),
    Column("value", String(4000), nullable=False),
    UniqueConstraint("scope", "table_name", "column_name", name="uq_extended_properties"),
)


def _key_filter(key):
    return (
        (extended_properties.c.scope == key.scope.value)
        & (extended_properties.c.table_name == key.table_name)
        & (extended_properties.c.column_name == (key.column_name or ''))
    )


class SideTableCatalog(CatalogDialect):
    """
    Catalog dialect backed by a plain table.

    Add fails on an existing entry (unique constraint) and update fails on a
    missing one, like sp_addextendedproperty / sp_updateextendedproperty.
    """

    name = "side_table"
    schema = "main"

    def description_exists(self, connection, key):
        row = connection.execute(select(extended_properties.c.value).where(_key_filter(key))).first()
        return row is not None

    def add_description(self, connection, key, description):
        connection.execute(extended_properties.insert().values(
            scope=key.scope.value,
            table_name=key.table_name,
            column_name=key.column_name or '',
            value=description,
        ))

    def update_description(self, connection, key, description):
        result = connection.execute(
            extended_properties.update().where(_key_filter(key)).values(value=description)
        )
        if result.rowcount != 1:
            raise SQLAlchemyError(f"Property does not exist for {key}")


class FailingCatalog(CatalogDialect):
    """Wraps a catalog and raises OperationalError on the n-th write."""

    name = "failing"

    def __init__(self, inner: CatalogDialect, fail_on_write: int):
        self.inner = inner
        self.fail_on_write = fail_on_write
        self.writes = 0

    def description_exists(self, connection, key):
        return self.inner.description_exists(connection, key)

    def add_description(self, connection, key, description):
        self._count()
        self.inner.add_description(connection, key, description)

    def update_description(self, connection, key, description):
        self._count()
        self.inner.update_description(connection, key, description)

    def _count(self):
        self.writes += 1
        if self.writes == self.fail_on_write:
            raise OperationalError("EXEC sp_addextendedproperty", {}, Exception("injected failure"))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def sqlite_engine():
    """
    In-memory SQLite engine with the extended_properties table created.

    StaticPool keeps the single in-memory database alive across connections.

    Yields:
        SQLAlchemy engine
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    catalog_metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def side_table_catalog():
    return SideTableCatalog()


@pytest.fixture
def stored_descriptions(sqlite_engine):
    """
    Read committed catalog contents.

    Returns:
        Callable returning {(scope, table, column_or_None): value}
    """
    def read():
        with sqlite_engine.connect() as conn:
            rows = conn.execute(select(extended_properties)).all()
        return {
            (CatalogScope(row.scope), row.table_name, row.column_name or None): row.value
            for row in rows
        }
    return read


@pytest.fixture
def failing_catalog(side_table_catalog):
    """
    Factory for a side-table catalog that fails on the n-th write.

    Returns:
        Callable(fail_on_write) -> FailingCatalog
    """
    def make(fail_on_write: int) -> FailingCatalog:
        return FailingCatalog(side_table_catalog, fail_on_write=fail_on_write)
    return make
