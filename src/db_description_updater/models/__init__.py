# DB Description Updater - Models Package

from .annotations import DbTableMeta, DbColumnMeta, db_table_meta, get_table_meta
from .entity import (
    EntityCollection, EntitySet, EntityType, ColumnMeta,
    CatalogScope, CatalogAction, CatalogKey, CatalogWrite
)
from .reflection import inherits_or_implements, capability_arguments, resolve_generic_definition

__all__ = [
    'DbTableMeta',
    'DbColumnMeta',
    'db_table_meta',
    'get_table_meta',
    'EntityCollection',
    'EntitySet',
    'EntityType',
    'ColumnMeta',
    'CatalogScope',
    'CatalogAction',
    'CatalogKey',
    'CatalogWrite',
    'inherits_or_implements',
    'capability_arguments',
    'resolve_generic_definition',
]
