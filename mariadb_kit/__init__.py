"""
mariadb-kit: lazy pool/connection lifecycle and CRUD helpers for MariaDB/MySQL.
"""

import logging

from mariadb_kit.client import Database
from mariadb_kit.config import DatabaseConfig
from mariadb_kit.errors import (
    ConfigurationMissingError,
    ConnectionCreationError,
    DriverError,
    MariaDBError,
    MissingTableNameError,
    MissingValuesError,
    MissingWhereClauseError,
    NoConnectionError,
    PoolCreationError,
    QueryBuilderError,
)
from mariadb_kit.pool import ConnectionManager, ExecResult

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Database",
    "DatabaseConfig",
    "ConnectionManager",
    "ExecResult",
    "MariaDBError",
    "ConfigurationMissingError",
    "PoolCreationError",
    "ConnectionCreationError",
    "NoConnectionError",
    "QueryBuilderError",
    "MissingTableNameError",
    "MissingValuesError",
    "MissingWhereClauseError",
    "DriverError",
]
