#!/usr/bin/env python3
"""
Update Descriptions Script

Writes table and column descriptions declared on a model root to the database
catalog (SQL Server extended properties or PostgreSQL comments).

Run once per schema-provisioning cycle, after migrations have been applied.
Runs must not overlap against the same schema.

Usage:
    # Reconcile every description declared by myapp.models:ShopModel
    python -m db_description_updater.scripts.update_descriptions myapp.models:ShopModel

    # Target a different schema
    python -m db_description_updater.scripts.update_descriptions myapp.models:Base --schema sales

    # Dry run (read and write, then roll back)
    python -m db_description_updater.scripts.update_descriptions myapp.models:ShopModel --dry-run
"""

import argparse
import importlib
import logging
import sys

from ..database.catalog import catalog_for
from ..database.connection import DatabaseConnection
from ..database.reconciler import update_database_descriptions
from ..utils.config import DB_DIALECT
from ..utils.logger import setup_logger, set_log_level

logger = setup_logger(__name__)


def import_model_root(target: str) -> type:
    """
    Import a model root given as 'package.module:ClassName'.

    Raises:
        ValueError: If target is not in module:attribute form
    """
    module_name, _, attribute = target.partition(':')
    if not module_name or not attribute:
        raise ValueError(f"Expected 'package.module:ClassName', got '{target}'")

    model_root = importlib.import_module(module_name)
    for part in attribute.split('.'):
        model_root = getattr(model_root, part)
    return model_root


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Write model descriptions to the database catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        'model_root',
        metavar='MODULE:CLASS',
        help='Model root declaring entity collections, or a SQLAlchemy declarative base'
    )
    parser.add_argument(
        '--dialect',
        choices=['mssql', 'postgresql'],
        default=DB_DIALECT,
        help='Database dialect (default: DB_DIALECT)'
    )
    parser.add_argument(
        '--schema',
        type=str,
        metavar='NAME',
        help='Schema holding the tables (default: DB_SCHEMA for mssql, public for postgresql)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run without committing changes'
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Verbose output'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        set_log_level(logging.DEBUG)

    database = DatabaseConnection(dialect=args.dialect)
    try:
        model_root = import_model_root(args.model_root)
        report = update_database_descriptions(
            model_root,
            engine=database.get_engine(),
            dialect=catalog_for(args.dialect, args.schema),
            dry_run=args.dry_run
        )
    except Exception as e:
        logger.exception(f"Description update failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        database.close()

    print("\n=== Description Update Results ===")
    print(f"Entities scanned: {report.entities_scanned}")
    print(f"Added: {report.adds}")
    print(f"Updated: {report.updates}")

    if args.dry_run:
        print("\n(Dry run - no changes committed)")

    return 0


if __name__ == '__main__':
    sys.exit(main())
