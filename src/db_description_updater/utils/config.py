"""
DB Description Updater - Configuration Management
Handles environment configuration with AWS SSM Parameter Store for production
and python-dotenv for local development.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()


class Config:
    """
    Configuration manager with dual-mode operation:
    - Local: Reads from .env file via python-dotenv
    - Production: Reads from AWS SSM Parameter Store
    """

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'local')
        self._ssm_client = None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration value from SSM (production) or environment (local).

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self.environment == 'production':
            return self._get_from_ssm(key, default)
        else:
            return os.getenv(key, default)

    def _get_from_ssm(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration from AWS SSM Parameter Store.

        Args:
            key: Parameter key name
            default: Default value if parameter not found

        Returns:
            Parameter value or default

        Raises:
            ConfigurationError: If parameter not found and no default provided,
                               or if AWS credentials/permissions are invalid
        """
        ssm_prefix = os.getenv('AWS_SSM_PREFIX', '/db-description-updater')
        parameter_name = f"{ssm_prefix}/{key}"

        try:
            if self._ssm_client is None:
                import boto3
                self._ssm_client = boto3.client(
                    'ssm',
                    region_name=os.getenv('AWS_REGION', 'us-east-1')
                )

            response = self._ssm_client.get_parameter(
                Name=parameter_name,
                WithDecryption=True
            )
            return response['Parameter']['Value']

        except Exception as e:
            error_type = type(e).__name__
            if error_type == 'ParameterNotFound':
                if default is not None:
                    return default
                raise ConfigurationError(
                    f"Required parameter '{key}' not found in SSM at path '{parameter_name}'. "
                    f"Please create the parameter or provide a default value."
                )
            if default is not None:
                import logging
                logging.warning(
                    f"Failed to fetch SSM parameter '{key}': {error_type}: {e}. "
                    f"Using default value."
                )
                return default
            raise ConfigurationError(
                f"Failed to fetch parameter '{key}' from SSM: {error_type}: {e}. "
                f"Check AWS credentials, IAM permissions, and network connectivity."
            )

    def get_int(self, key: str, default: int) -> int:
        """
        Get configuration value as integer.

        Args:
            key: Configuration key name
            default: Default value if key not found or conversion fails

        Returns:
            Integer value or default
        """
        value = self.get(key, str(default))
        try:
            return int(value)
        except (ValueError, TypeError) as e:
            import logging
            logging.warning(
                f"Invalid integer for config key '{key}': '{value}'. "
                f"Using default={default}. Error: {e}"
            )
            return default


class ConfigurationError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


# Global configuration instance
config = Config()


# Database configuration
DB_DIALECT = config.get('DB_DIALECT', 'mssql')
DB_HOST = config.get('DB_HOST', 'localhost')
DB_PORT = config.get_int('DB_PORT', 1433)
DB_NAME = config.get('DB_NAME', 'master')
DB_USER = config.get('DB_USER', 'sa')
DB_PASSWORD = config.get('DB_PASSWORD', '')
DB_ODBC_DRIVER = config.get('DB_ODBC_DRIVER', 'ODBC Driver 18 for SQL Server')

# Catalog settings
DB_SCHEMA = config.get('DB_SCHEMA', 'dbo')
DESCRIPTION_PROPERTY_NAME = config.get('DESCRIPTION_PROPERTY_NAME', 'MS_Description')

# Logging configuration
LOG_LEVEL = config.get('LOG_LEVEL', 'INFO')

# Database connection pool settings (single reconciliation run per process)
DB_POOL_SIZE = 2
DB_POOL_MAX_OVERFLOW = 0
DB_POOL_RECYCLE = 3600  # Recycle connections after 1 hour
DB_POOL_PRE_PING = True  # Health check connections before use
