"""
DB Description Updater
Keeps table and column descriptions in the database catalog in sync with the
descriptions declared on application model types.
"""

from .models import (
    DbTableMeta, DbColumnMeta, db_table_meta,
    EntityCollection, EntitySet, EntityType, ColumnMeta,
    CatalogScope, CatalogAction, CatalogKey, CatalogWrite,
)
from .database.errors import DescriptionUpdateError, ScanError, ResolutionError, CatalogIOError
from .database.scanner import ModelScanner
from .database.naming import NameResolver, MapperTableNameSource, OrmTraceTableNameSource
from .database.catalog import (
    CatalogDialect, SqlServerCatalog, PostgresCatalog, CatalogReader, DescriptionWriter
)
from .database.reconciler import ReconciliationCoordinator, ReconciliationReport, update_database_descriptions

__all__ = [
    'DbTableMeta',
    'DbColumnMeta',
    'db_table_meta',
    'EntityCollection',
    'EntitySet',
    'EntityType',
    'ColumnMeta',
    'CatalogScope',
    'CatalogAction',
    'CatalogKey',
    'CatalogWrite',
    'DescriptionUpdateError',
    'ScanError',
    'ResolutionError',
    'CatalogIOError',
    'ModelScanner',
    'NameResolver',
    'MapperTableNameSource',
    'OrmTraceTableNameSource',
    'CatalogDialect',
    'SqlServerCatalog',
    'PostgresCatalog',
    'CatalogReader',
    'DescriptionWriter',
    'ReconciliationCoordinator',
    'ReconciliationReport',
    'update_database_descriptions',
]
