"""
DB Description Updater - Name Resolution
Maps entity types to physical table names and properties to column names.

Table name precedence, first match wins:
1. An explicit name declared on the type (DbTableMeta.name, then __tablename__)
2. The ORM's own idea of the table, asked through each configured name source
3. The bare class name
"""

import dataclasses
import re
from typing import Callable, Iterable, List, Optional

from sqlalchemy import inspect as sa_inspect, select
from sqlalchemy.dialects import mssql
from sqlalchemy.orm import aliased

from ..models.entity import ColumnMeta, EntityType
from ..utils.logger import setup_logger
from .errors import ResolutionError
from .scanner import local_column

logger = setup_logger(__name__)


class TableNameSource:
    """A way of asking the ORM which table a model type maps to."""

    name = "table_name_source"

    def table_name(self, model_type: type) -> Optional[str]:
        """Return the table name, or None when this source has no answer."""
        raise NotImplementedError


class MapperTableNameSource(TableNameSource):
    """Reads the table straight from the SQLAlchemy mapper's metadata."""

    name = "mapper"

    def table_name(self, model_type: type) -> Optional[str]:
        mapper = sa_inspect(model_type, raiseerr=False)
        if mapper is None:
            return None
        return getattr(mapper.local_table, 'name', None)


def sqlalchemy_query_trace(model_type: type) -> Optional[str]:
    """
    Compile ``SELECT ... FROM <table> AS [Extent1]`` for a mapped class
    against the SQL Server dialect.
    """
    if sa_inspect(model_type, raiseerr=False) is None:
        return None
    statement = select(aliased(model_type, name="Extent1"))
    return str(statement.compile(dialect=mssql.dialect()))


class OrmTraceTableNameSource(TableNameSource):
    """
    Extracts the table name from the ORM's generated query text.

    Compatibility boundary: the patterns below are tied to the trace format
    ``... FROM [schema].[table] AS [alias]`` and must stay as they are.
    When the bracket pattern does not match, the raw FROM token is returned.
    """

    name = "orm_trace"

    FROM_PATTERN = re.compile(r"FROM (?P<table>.*) AS")
    BRACKETED_PATTERN = re.compile(r"(\[\w+\]\.)?\[(?P<table>.*)\]")

    def __init__(self, trace: Callable[[type], Optional[str]] = sqlalchemy_query_trace):
        """
        Args:
            trace: Callable returning the query trace for a model type (None if unavailable)
        """
        self.trace = trace

    def table_name(self, model_type: type) -> Optional[str]:
        sql = self.trace(model_type)
        if not sql:
            return None
        return self.extract(sql)

    @classmethod
    def extract(cls, sql: str) -> Optional[str]:
        """Pull the table name out of a query trace; None if there is no FROM token."""
        match = cls.FROM_PATTERN.search(sql)
        full_table_name = match.group('table') if match else ''
        if not full_table_name:
            return None

        bracketed = cls.BRACKETED_PATTERN.search(full_table_name)
        if bracketed:
            return bracketed.group('table')
        return full_table_name


class NameResolver:
    """
    Resolves table and column names for entity types.

    Example:
        >>> resolver = NameResolver()
        >>> resolved = resolver.resolve(entity)
        >>> resolved.table_name
        'Persons'
    """

    def __init__(self, sources: Optional[Iterable[TableNameSource]] = None):
        """
        Args:
            sources: Tier-2 name sources, asked in order (defaults to the mapper source)
        """
        self.sources: List[TableNameSource] = list(sources) if sources is not None else [MapperTableNameSource()]

    def resolve(self, entity: EntityType) -> EntityType:
        """Return a copy of entity with its table name and every column name resolved."""
        table_name = self.resolve_table_name(entity)
        columns = tuple(self.resolve_column(entity, column) for column in entity.columns)
        return dataclasses.replace(entity, table_name=table_name, columns=columns)

    def resolve_table_name(self, entity: EntityType) -> str:
        """
        Resolve the physical table name of an entity type.

        Raises:
            ResolutionError: If an explicit override is blank or a name source fails
        """
        model_type = entity.model_type

        override = entity.table_name_override
        if override is None:
            # declared_attr directives are left to the mapper source
            declared = model_type.__dict__.get('__tablename__')
            if isinstance(declared, str):
                override = declared
        if override is not None:
            if not isinstance(override, str) or not override.strip():
                raise ResolutionError(f"{entity.name}: explicit table name {override!r} is blank")
            return override

        for source in self.sources:
            try:
                name = source.table_name(model_type)
            except Exception as e:
                raise ResolutionError(
                    f"{entity.name}: table name source '{source.name}' failed: {e}"
                ) from e
            if name:
                logger.debug("Table name resolved", extra={
                    "entity": entity.name,
                    "table": name,
                    "source": source.name
                })
                return name

        return model_type.__name__

    def resolve_column(self, entity: EntityType, column: ColumnMeta) -> ColumnMeta:
        """Resolve one column name: explicit override, then mapped column name, then property name."""
        override = column.column_name_override
        if override is not None:
            if not override.strip():
                raise ResolutionError(
                    f"{entity.name}.{column.property_name}: explicit column name is blank"
                )
            return dataclasses.replace(column, column_name=override)

        return dataclasses.replace(column, column_name=self._mapped_column_name(entity, column) or column.property_name)

    @staticmethod
    def _mapped_column_name(entity: EntityType, column: ColumnMeta) -> Optional[str]:
        mapper = sa_inspect(entity.model_type, raiseerr=False)
        if mapper is None:
            return None
        mapped = local_column(mapper, column.property_name)
        if mapped is None:
            return None
        return getattr(mapped, 'name', None)
