"""
SQL statement builders for the CRUD helpers.

Statements are assembled with SQLAlchemy Core and compiled against the MySQL
dialect with literal binds, so every function returns a final SQL string that
can be sent to the server as-is.

Argument forms:

- field: None (``*``), a string, or a sequence of column names/expressions
- where / having: a raw string, or a mapping ``{column: value}`` AND-ed together
  (None -> IS NULL, list/tuple/set -> IN)
- order: a raw string (``"id DESC"``), a sequence of strings, or ``{column: "ASC"|"DESC"}``
- group: a raw string or a sequence of column names
- on: a raw string or ``{left_column: right_column}``
"""

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import (
    and_,
    column,
    delete,
    false,
    func,
    insert,
    literal,
    literal_column,
    null,
    select,
    table,
    text,
    update,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.sql import ClauseElement

from mariadb_kit.errors import (
    MissingTableNameError,
    MissingValuesError,
    MissingWhereClauseError,
    QueryBuilderError,
)

# named paramstyle: '%' is left alone since statements are sent without args
_DIALECT = mysql.dialect(paramstyle="named")

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")

_JOIN_TYPES = ("inner", "left", "right")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render(stmt: ClauseElement) -> str:
    return str(stmt.compile(dialect=_DIALECT, compile_kwargs={"literal_binds": True}))


def _raw(sql: str) -> Any:
    # text() treats ":name" as a bind parameter; escape colons so they render verbatim
    return text(sql.replace(":", "\\:"))


def _col(name: str) -> Any:
    """Plain identifiers become quoted columns; dotted names and expressions pass through."""
    if not isinstance(name, str) or not name.strip():
        raise QueryBuilderError(f"Invalid column name: {name!r}")
    name = name.strip()
    if _IDENT.match(name):
        return column(name)
    return literal_column(name)


def _table(name: Any, columns: Sequence[str] = ()) -> Any:
    if not isinstance(name, str) or not name.strip():
        raise MissingTableNameError("Table name is required")
    name = name.strip()
    schema = None
    if "." in name:
        schema, name = name.rsplit(".", 1)
    return table(name, *(column(c) for c in columns), schema=schema)


def _value(value: Any) -> Any:
    """Bindable value for INSERT/UPDATE. Mappings and lists are stored as JSON text."""
    if value is None:
        return null()
    if isinstance(value, (Mapping, list)):
        return literal(json.dumps(value, default=str))
    return literal(value)


def _match(key: str, value: Any) -> Any:
    col = _col(key)
    if value is None:
        return col.is_(None)
    if isinstance(value, (list, tuple, set, frozenset)):
        if not value:
            return false()
        return col.in_([literal(v) for v in value])
    return col == literal(value)


def _condition(cond: Any, name: str = "where") -> Any:
    """Raw string or mapping -> clause; None/empty -> None."""
    if cond is None:
        return None
    if isinstance(cond, str):
        return _raw(cond) if cond.strip() else None
    if isinstance(cond, Mapping):
        if not cond:
            return None
        return and_(*(_match(k, v) for k, v in cond.items()))
    raise QueryBuilderError(f"{name} must be a string or a mapping, got {type(cond).__name__}")


def _fields(field: Any) -> list[Any]:
    if field is None:
        return [literal_column("*")]
    if isinstance(field, str):
        return [_col(field)] if field.strip() else [literal_column("*")]
    if isinstance(field, Sequence):
        cols = [_col(f) for f in field]
        return cols or [literal_column("*")]
    raise QueryBuilderError(f"field must be a string or a sequence, got {type(field).__name__}")


def _order(order: Any) -> list[Any]:
    if order is None:
        return []
    if isinstance(order, str):
        return [literal_column(order)] if order.strip() else []
    if isinstance(order, Mapping):
        out = []
        for key, direction in order.items():
            d = str(direction or "ASC").strip().upper()
            if d not in ("ASC", "DESC"):
                raise QueryBuilderError(f"Invalid order direction for {key!r}: {direction!r}")
            out.append(_col(key).desc() if d == "DESC" else _col(key).asc())
        return out
    if isinstance(order, Sequence):
        return [literal_column(o) for o in order]
    raise QueryBuilderError(f"order must be a string, sequence or mapping, got {type(order).__name__}")


def _group(group: Any) -> list[Any]:
    if group is None:
        return []
    if isinstance(group, str):
        return [literal_column(group)] if group.strip() else []
    if isinstance(group, Sequence):
        return [_col(g) for g in group]
    raise QueryBuilderError(f"group must be a string or a sequence, got {type(group).__name__}")


def _count_arg(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QueryBuilderError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _on(on: Any) -> Any:
    if isinstance(on, str) and on.strip():
        return _raw(on)
    if isinstance(on, Mapping) and on:
        return and_(*(literal_column(left) == literal_column(right) for left, right in on.items()))
    raise QueryBuilderError("Join condition (on) is required")


def _join_source(table_name: Any, type: str | None, join: Any, on: Any) -> Any:
    base = _table(table_name)
    if not isinstance(join, str) or not join.strip():
        raise QueryBuilderError("Join table name is required")
    other = _table(join)
    onclause = _on(on)
    kind = (type or "inner").strip().lower()
    if kind == "inner":
        return base.join(other, onclause)
    if kind == "left":
        return base.outerjoin(other, onclause)
    if kind == "right":
        # a RIGHT JOIN b == b LEFT JOIN a
        return other.outerjoin(base, onclause)
    raise QueryBuilderError(f"Unsupported join type: {type!r} (expected one of {', '.join(_JOIN_TYPES)})")


def _select(
    source: Any,
    field: Any = None,
    where: Any = None,
    group: Any = None,
    having: Any = None,
    order: Any = None,
    limit: int | None = None,
    offset: int | None = None,
) -> str:
    stmt = select(*_fields(field)).select_from(source)
    clause = _condition(where)
    if clause is not None:
        stmt = stmt.where(clause)
    groups = _group(group)
    if groups:
        stmt = stmt.group_by(*groups)
    having_clause = _condition(having, "having")
    if having_clause is not None:
        stmt = stmt.having(having_clause)
    orders = _order(order)
    if orders:
        stmt = stmt.order_by(*orders)
    limit = _count_arg(limit, "limit")
    offset = _count_arg(offset, "offset")
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)
    return _render(stmt)


def _rows(values: Any) -> list[Mapping[str, Any]]:
    if isinstance(values, Mapping):
        rows = [values] if values else []
    elif isinstance(values, Sequence) and not isinstance(values, str):
        rows = [v for v in values if isinstance(v, Mapping) and v]
        if len(rows) != len(values):
            raise MissingValuesError("Every row to insert must be a non-empty mapping")
    else:
        rows = []
    if not rows:
        raise MissingValuesError("Values are required")
    keys = list(rows[0])
    for row in rows[1:]:
        if list(row) != keys:
            raise QueryBuilderError("All rows to insert must have the same columns in the same order")
    return rows


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def query_insert(table_name: str, values: Any) -> str:
    """INSERT one row (mapping) or several rows (sequence of mappings)."""
    _table(table_name)
    rows = _rows(values)
    tbl = _table(table_name, list(rows[0]))
    data = [{k: _value(v) for k, v in row.items()} for row in rows]
    stmt = insert(tbl).values(data[0] if len(data) == 1 else data)
    return _render(stmt)


def query_select(
    table_name: str,
    field: Any = None,
    where: Any = None,
    order: Any = None,
    limit: int | None = None,
    offset: int | None = None,
) -> str:
    return _select(_table(table_name), field, where, order=order, limit=limit, offset=offset)


def query_select_group(
    table_name: str,
    field: Any = None,
    where: Any = None,
    group: Any = None,
    having: Any = None,
    order: Any = None,
    limit: int | None = None,
) -> str:
    return _select(_table(table_name), field, where, group, having, order, limit)


def query_select_join(
    table_name: str,
    type: str | None = None,
    join: str | None = None,
    on: Any = None,
    field: Any = None,
    where: Any = None,
    order: Any = None,
    limit: int | None = None,
) -> str:
    source = _join_source(table_name, type, join, on)
    return _select(source, field, where, order=order, limit=limit)


def query_select_join_group(
    table_name: str,
    type: str | None = None,
    join: str | None = None,
    on: Any = None,
    field: Any = None,
    where: Any = None,
    group: Any = None,
    having: Any = None,
    order: Any = None,
    limit: int | None = None,
) -> str:
    source = _join_source(table_name, type, join, on)
    return _select(source, field, where, group, having, order, limit)


def query_update(table_name: str, values: Any, where: Any) -> str:
    """UPDATE with a mandatory where clause (no full-table updates)."""
    _table(table_name)
    if not isinstance(values, Mapping) or not values:
        raise MissingValuesError("Values are required")
    clause = _condition(where)
    if clause is None:
        raise MissingWhereClauseError("Where clause is required")
    tbl = _table(table_name, list(values))
    stmt = update(tbl).values({k: _value(v) for k, v in values.items()}).where(clause)
    return _render(stmt)


def query_delete(table_name: str, where: Any) -> str:
    """DELETE with a mandatory where clause (no full-table deletes)."""
    tbl = _table(table_name)
    clause = _condition(where)
    if clause is None:
        raise MissingWhereClauseError("Where clause is required")
    return _render(delete(tbl).where(clause))


def query_count(table_name: str, where: Any = None) -> str:
    """SELECT count(*) AS count ..."""
    tbl = _table(table_name)
    stmt = select(func.count().label("count")).select_from(tbl)
    clause = _condition(where)
    if clause is not None:
        stmt = stmt.where(clause)
    return _render(stmt)
