"""
DB Description Updater - Reconciliation Coordinator
Writes every declared table/column description to the schema catalog in one transaction.

Flow:
    open connection -> begin transaction -> scan -> resolve names
    -> per entity: table description, then each persisted column description
    -> commit (or roll back on any error) -> close connection

Usage:
    from db_description_updater import update_database_descriptions

    report = update_database_descriptions(ShopModel, engine)
    print(report.adds, report.updates)
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from sqlalchemy.engine import Engine

from ..models.entity import CatalogAction, CatalogKey, CatalogWrite, EntityType
from ..utils.logger import (
    setup_logger,
    log_reconciliation_start,
    log_reconciliation_complete,
    log_reconciliation_error,
)
from .catalog import CatalogDialect, CatalogReader, DescriptionWriter, SqlServerCatalog, catalog_for
from .connection import db
from .naming import NameResolver
from .scanner import ModelScanner

logger = setup_logger(__name__)


@dataclass
class ReconciliationReport:
    """Outcome of one reconciliation run."""
    entities_scanned: int = 0
    writes: List[CatalogWrite] = field(default_factory=list)
    committed: bool = False

    @property
    def adds(self) -> int:
        return sum(1 for write in self.writes if write.action is CatalogAction.ADD)

    @property
    def updates(self) -> int:
        return sum(1 for write in self.writes if write.action is CatalogAction.UPDATE)

    def to_dict(self) -> dict:
        return {
            'entities_scanned': self.entities_scanned,
            'adds': self.adds,
            'updates': self.updates,
            'committed': self.committed,
        }


class ReconciliationCoordinator:
    """
    Owns the single connection and transaction of a reconciliation run.

    Not safe to run concurrently against the same schema; callers serialize runs.
    """

    def __init__(self, engine: Engine, dialect: Optional[CatalogDialect] = None,
                 scanner: Optional[ModelScanner] = None,
                 name_resolver: Optional[NameResolver] = None):
        """
        Initialize coordinator.

        Args:
            engine: SQLAlchemy engine to open the run's connection from
            dialect: Catalog dialect (defaults to SQL Server extended properties)
            scanner: Model scanner (defaults to ModelScanner())
            name_resolver: Name resolver (defaults to NameResolver())
        """
        self.engine = engine
        self.dialect = dialect or SqlServerCatalog()
        self.scanner = scanner or ModelScanner()
        self.name_resolver = name_resolver or NameResolver()

    def run(self, model_root: type, dry_run: bool = False) -> ReconciliationReport:
        """
        Scan model_root and reconcile every description it declares.

        Args:
            model_root: Class declaring entity collections, or a declarative base
            dry_run: Roll back instead of committing

        Returns:
            ReconciliationReport

        Raises:
            ScanError, ResolutionError, CatalogIOError: Re-raised after rollback
        """
        root_name = getattr(model_root, '__name__', repr(model_root))
        return self._execute(lambda: self.scanner.scan(model_root), root_name, dry_run)

    def apply(self, entities: Iterable[EntityType], dry_run: bool = False) -> ReconciliationReport:
        """Reconcile already-built entity records, skipping the scan."""
        entities = list(entities)
        return self._execute(lambda: entities, None, dry_run)

    def _execute(self, entity_source: Callable[[], List[EntityType]],
                 model_root: Optional[str], dry_run: bool) -> ReconciliationReport:
        log_reconciliation_start(model_root or "<entities>", getattr(self.dialect, 'schema', ''))
        report = ReconciliationReport()

        connection = self.engine.connect()
        transaction = None
        try:
            transaction = connection.begin()

            entities = entity_source()
            report.entities_scanned = len(entities)

            # Every name is fixed before the first catalog round trip
            resolved = [self.name_resolver.resolve(entity) for entity in entities]

            reader = CatalogReader(connection, self.dialect)
            writer = DescriptionWriter(connection, self.dialect)
            for entity in resolved:
                self._reconcile_entity(entity, reader, writer, report)

            if dry_run:
                transaction.rollback()
                logger.info("Dry run: rolled back description changes", extra={
                    "writes": len(report.writes)
                })
            else:
                transaction.commit()
                report.committed = True

        except Exception as e:
            if transaction is not None and transaction.is_active:
                transaction.rollback()
            log_reconciliation_error(e, model_root)
            raise
        finally:
            connection.close()

        log_reconciliation_complete(report.entities_scanned, report.adds, report.updates, report.committed)
        return report

    def _reconcile_entity(self, entity: EntityType, reader: CatalogReader,
                          writer: DescriptionWriter, report: ReconciliationReport):
        if entity.table_description is not None:
            key = CatalogKey.for_table(entity.table_name)
            self._reconcile(key, entity.table_description, reader, writer, report)

        for column in entity.persisted_columns:
            if column.description is None:
                continue
            key = CatalogKey.for_column(entity.table_name, column.resolved_name)
            self._reconcile(key, column.description, reader, writer, report)

    @staticmethod
    def _reconcile(key: CatalogKey, description: str, reader: CatalogReader,
                   writer: DescriptionWriter, report: ReconciliationReport):
        exists = reader.exists(key)
        action = writer.write(key, description, exists)
        report.writes.append(CatalogWrite(key=key, action=action, description=description))


def update_database_descriptions(model_root: type, engine: Optional[Engine] = None,
                                 dialect: Optional[CatalogDialect] = None,
                                 dry_run: bool = False, **kwargs) -> ReconciliationReport:
    """
    Reconcile descriptions for model_root against the database.

    Args:
        model_root: Class declaring entity collections, or a declarative base
        engine: SQLAlchemy engine (defaults to the configured global DatabaseConnection)
        dialect: Catalog dialect (defaults to one matching the engine's dialect)
        dry_run: Roll back instead of committing
        **kwargs: Passed to ReconciliationCoordinator (scanner, name_resolver)

    Example:
        >>> report = update_database_descriptions(ShopModel)
        >>> report.to_dict()
        {'entities_scanned': 3, 'adds': 0, 'updates': 11, 'committed': True}
    """
    if engine is None:
        engine = db.get_engine()
    if dialect is None:
        dialect = catalog_for(engine.dialect.name)

    coordinator = ReconciliationCoordinator(engine, dialect=dialect, **kwargs)
    return coordinator.run(model_root, dry_run=dry_run)
