"""
Connection health check.
"""

from typing import Any

from .connect import execute, is_valid


async def health_check(conn: Any) -> bool:
    """
    Run SELECT 1 and return True if it comes back. Any driver error means unhealthy.
    """
    if not is_valid(conn):
        return False
    try:
        rows = await execute(conn, "SELECT 1 AS ok")
    except Exception:
        return False
    return bool(rows) and rows[0].get("ok") == 1
