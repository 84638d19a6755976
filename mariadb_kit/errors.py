"""
Errors raised by mariadb_kit.

Driver errors are not wrapped: they reach the caller as pymysql exceptions,
re-exported here as DriverError for convenience.
"""

from pymysql.err import MySQLError as DriverError


class MariaDBError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationMissingError(MariaDBError):
    """No configuration was passed and none is cached."""


class PoolCreationError(MariaDBError):
    """The driver returned no pool."""


class ConnectionCreationError(MariaDBError):
    """The driver returned no connection."""


class NoConnectionError(MariaDBError):
    """query() could not obtain a valid connection."""


class QueryBuilderError(MariaDBError, ValueError):
    """Invalid arguments for a SQL builder function."""


class MissingTableNameError(QueryBuilderError):
    pass


class MissingValuesError(QueryBuilderError):
    pass


class MissingWhereClauseError(QueryBuilderError):
    pass


__all__ = [
    "DriverError",
    "MariaDBError",
    "ConfigurationMissingError",
    "PoolCreationError",
    "ConnectionCreationError",
    "NoConnectionError",
    "QueryBuilderError",
    "MissingTableNameError",
    "MissingValuesError",
    "MissingWhereClauseError",
]
