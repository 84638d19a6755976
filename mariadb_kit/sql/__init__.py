"""
SQL statement builders (SQLAlchemy Core, MySQL dialect).
"""

from mariadb_kit.sql.builder import (
    query_count,
    query_delete,
    query_insert,
    query_select,
    query_select_group,
    query_select_join,
    query_select_join_group,
    query_update,
)

__all__ = [
    "query_count",
    "query_delete",
    "query_insert",
    "query_select",
    "query_select_group",
    "query_select_join",
    "query_select_join_group",
    "query_update",
]
