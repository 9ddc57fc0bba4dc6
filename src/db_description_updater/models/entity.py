"""
Entity and catalog records passed between scanner, resolver and catalog.
"""

import enum
from dataclasses import dataclass, field
from typing import Generic, Optional, Tuple, TypeVar

T = TypeVar('T')


class EntityCollection(Generic[T]):
    """Capability marker: a typed collection of persisted entities of type T."""
    pass


class EntitySet(EntityCollection[T]):
    """Stock entity collection declared on a model root, e.g. ``persons: EntitySet[Person]``."""
    pass


class CatalogScope(enum.Enum):
    """Which catalog object a description is attached to."""
    TABLE = "table"
    COLUMN = "column"


class CatalogAction(enum.Enum):
    """Catalog mutation issued for a description."""
    ADD = "add"
    UPDATE = "update"


@dataclass(frozen=True)
class ColumnMeta:
    """One property of an entity type."""
    property_name: str
    description: Optional[str] = None
    is_persisted: bool = True
    column_name_override: Optional[str] = None
    column_name: Optional[str] = None

    @property
    def resolved_name(self) -> str:
        return self.column_name or self.property_name


@dataclass(frozen=True)
class EntityType:
    """
    One model type mapped to one table.

    table_name stays None until the NameResolver fills it in.
    """
    model_type: type
    name: str
    table_description: Optional[str] = None
    table_name_override: Optional[str] = None
    columns: Tuple[ColumnMeta, ...] = field(default_factory=tuple)
    table_name: Optional[str] = None

    @property
    def persisted_columns(self) -> Tuple[ColumnMeta, ...]:
        return tuple(column for column in self.columns if column.is_persisted)


@dataclass(frozen=True)
class CatalogKey:
    """Identifies a stored description: (scope, table, optional column)."""
    scope: CatalogScope
    table_name: str
    column_name: Optional[str] = None

    def __post_init__(self):
        if self.scope is CatalogScope.COLUMN and not self.column_name:
            raise ValueError("Column-scoped catalog key requires a column name")
        if self.scope is CatalogScope.TABLE and self.column_name is not None:
            raise ValueError("Table-scoped catalog key must not carry a column name")

    @classmethod
    def for_table(cls, table_name: str) -> 'CatalogKey':
        return cls(CatalogScope.TABLE, table_name)

    @classmethod
    def for_column(cls, table_name: str, column_name: str) -> 'CatalogKey':
        return cls(CatalogScope.COLUMN, table_name, column_name)


@dataclass(frozen=True)
class CatalogWrite:
    """One catalog mutation issued during a reconciliation run."""
    key: CatalogKey
    action: CatalogAction
    description: str
