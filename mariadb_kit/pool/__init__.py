"""
Connections and connection pool for MariaDB/MySQL.

No driver layer of our own: aiomysql (on PyMySQL) does the wire work; this
package only decides when to create, reuse, lease and release handles.
"""

from .connect import ExecResult, execute, is_valid, pool_stats
from .health import health_check
from .manager import ConnectionManager

__all__ = [
    "ConnectionManager",
    "ExecResult",
    "execute",
    "health_check",
    "is_valid",
    "pool_stats",
]
