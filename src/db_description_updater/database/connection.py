"""
DB Description Updater - Database Connection Management
Provides the SQLAlchemy engine the reconciliation run opens its connection from.

Supported targets:
- mssql: SQL Server through pyodbc (extended properties)
- postgresql: PostgreSQL through psycopg2 (object comments)
"""

from sqlalchemy import create_engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.engine import Engine, URL

from ..utils.config import (
    DB_DIALECT, DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD, DB_ODBC_DRIVER,
    DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_PRE_PING,
    config
)
from ..utils.logger import logger, log_database_error


DRIVER_NAMES = {
    'mssql': 'mssql+pyodbc',
    'postgresql': 'postgresql+psycopg2',
}


class DatabaseConnection:
    """
    Manages the database engine.

    Features:
    - Lazy engine creation (nothing connects until first use)
    - Health checks before connection use (pool_pre_ping)
    - Bound parameters hidden from logs
    """

    def __init__(self, dialect: str = DB_DIALECT):
        self.dialect = dialect
        self._engine: Engine = None

    def build_url(self) -> URL:
        """
        Build the connection URL for the configured dialect.

        Raises:
            DatabaseConnectionError: If the dialect is not supported
        """
        drivername = DRIVER_NAMES.get(self.dialect)
        if drivername is None:
            raise DatabaseConnectionError(
                f"Unsupported DB_DIALECT '{self.dialect}'. Expected one of: {', '.join(DRIVER_NAMES)}"
            )

        query = {}
        if self.dialect == 'mssql':
            query = {
                "driver": DB_ODBC_DRIVER,
                "TrustServerCertificate": "yes",
            }

        # URL.create() keeps the password out of the rendered URL
        return URL.create(
            drivername=drivername,
            username=DB_USER,
            password=DB_PASSWORD,
            host=DB_HOST,
            port=DB_PORT,
            database=DB_NAME,
            query=query,
        )

    def get_engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine.

        Returns:
            SQLAlchemy Engine instance

        Raises:
            DatabaseConnectionError: If engine creation fails
        """
        if self._engine is None:
            connection_url = self.build_url()
            try:
                self._engine = create_engine(
                    connection_url,
                    poolclass=QueuePool,
                    pool_size=DB_POOL_SIZE,
                    max_overflow=DB_POOL_MAX_OVERFLOW,
                    pool_recycle=DB_POOL_RECYCLE,
                    pool_pre_ping=DB_POOL_PRE_PING,
                    echo=False,
                    hide_parameters=True,
                )

                logger.info("Database engine initialized", extra={
                    "dialect": self.dialect,
                    "host": DB_HOST,
                    "database": DB_NAME,
                    "environment": config.environment
                })

            except Exception as e:
                log_database_error(e, "Failed to create database engine")
                raise DatabaseConnectionError(f"Failed to create database engine: {e}") from e

        return self._engine

    def close(self):
        """Close all connections in the pool."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed")


class DatabaseConnectionError(Exception):
    """Raised when database connection fails."""
    pass


# Global database connection instance
db = DatabaseConnection()
