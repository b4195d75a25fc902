"""Generic table client over the SQLite database, scoped to one owner.

Every read and write issued through a :class:`UserScope` carries an
equality filter on the owner column, and every insert is stamped with the
owner id. Callers cannot widen or replace that filter.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

from lumen_assistant.storage.database import Database

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")

OWNER_COLUMNS: dict[str, str] = {"users": "id"}
JSON_COLUMNS: dict[str, frozenset[str]] = {
    "student_files": frozenset({"tags"}),
    "work_files": frozenset({"tags"}),
}


def _ident(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Query:
    """Chainable filter/order/limit builder bound to one table."""

    def __init__(self, db: Database, table: str, owner_column: str, owner_id: str):
        self._db = db
        self._table = _ident(table)
        self._owner_column = owner_column
        self._where: list[str] = [f"{_ident(owner_column)} = ?"]
        self._params: list[Any] = [owner_id]
        self._order: list[str] = []
        self._limit: int | None = None

    def eq(self, column: str, value: Any) -> Query:
        self._where.append(f"{_ident(column)} = ?")
        self._params.append(value)
        return self

    def not_in(self, column: str, values: Iterable[Any]) -> Query:
        values = list(values)
        if values:
            placeholders = ", ".join("?" for _ in values)
            self._where.append(f"{_ident(column)} NOT IN ({placeholders})")
            self._params.extend(values)
        return self

    def gte(self, column: str, value: Any) -> Query:
        self._where.append(f"{_ident(column)} >= ?")
        self._params.append(value)
        return self

    def lte(self, column: str, value: Any) -> Query:
        self._where.append(f"{_ident(column)} <= ?")
        self._params.append(value)
        return self

    def ilike(self, column: str, term: str) -> Query:
        """Case-insensitive substring match."""
        self._where.append(f"{_ident(column)} LIKE ? ESCAPE '\\'")
        self._params.append(f"%{_escape_like(term)}%")
        return self

    def ilike_any(self, columns: Iterable[str], term: str) -> Query:
        """Case-insensitive substring match on any of *columns*."""
        clauses = [f"{_ident(c)} LIKE ? ESCAPE '\\'" for c in columns]
        self._where.append("(" + " OR ".join(clauses) + ")")
        self._params.extend(f"%{_escape_like(term)}%" for _ in clauses)
        return self

    def order(self, column: str, desc: bool = False) -> Query:
        direction = "DESC" if desc else "ASC"
        self._order.append(f"{_ident(column)} {direction}")
        return self

    def limit(self, n: int) -> Query:
        self._limit = max(0, int(n))
        return self

    def _where_sql(self) -> str:
        return " AND ".join(self._where)

    def _select_sql(self) -> str:
        sql = f"SELECT * FROM {self._table} WHERE {self._where_sql()}"
        if self._order:
            # rowid breaks ties between rows written in the same millisecond
            tiebreak = "DESC" if self._order[0].endswith("DESC") else "ASC"
            sql += " ORDER BY " + ", ".join(self._order) + f", rowid {tiebreak}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        return sql

    async def all(self) -> list[dict[str, Any]]:
        cursor = await self._db.conn.execute(self._select_sql(), self._params)
        rows = await cursor.fetchall()
        return [_decode_row(self._table, row) for row in rows]

    async def first(self) -> dict[str, Any] | None:
        if self._limit is None:
            self._limit = 1
        rows = await self.all()
        return rows[0] if rows else None

    async def count(self) -> int:
        cursor = await self._db.conn.execute(
            f"SELECT COUNT(*) FROM {self._table} WHERE {self._where_sql()}", self._params
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def update(self, values: dict[str, Any]) -> int:
        """Apply *values* to every matching row; returns the number of rows changed."""
        values = {k: v for k, v in values.items() if k not in ("id", self._owner_column)}
        if not values:
            return 0
        assignments = ", ".join(f"{_ident(k)} = ?" for k in values)
        params = [_encode_value(self._table, k, v) for k, v in values.items()]
        cursor = await self._db.conn.execute(
            f"UPDATE {self._table} SET {assignments} WHERE {self._where_sql()}",
            params + self._params,
        )
        await self._db.conn.commit()
        return cursor.rowcount


class Table:
    """One table as seen by a single owner."""

    def __init__(self, db: Database, name: str, owner_id: str):
        self._db = db
        self.name = _ident(name)
        self.owner_column = OWNER_COLUMNS.get(name, "user_id")
        self._owner_id = owner_id

    def select(self) -> Query:
        return Query(self._db, self.name, self.owner_column, self._owner_id)

    async def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row owned by this scope and return it as stored."""
        row = {k: v for k, v in row.items() if v is not None}
        row[self.owner_column] = self._owner_id
        columns = ", ".join(_ident(k) for k in row)
        placeholders = ", ".join("?" for _ in row)
        params = [_encode_value(self.name, k, v) for k, v in row.items()]
        cursor = await self._db.conn.execute(
            f"INSERT INTO {self.name} ({columns}) VALUES ({placeholders}) RETURNING *",
            params,
        )
        stored = await cursor.fetchone()
        await cursor.close()
        await self._db.conn.commit()
        return _decode_row(self.name, stored)


class UserScope:
    """Entry point for all data access on behalf of one authenticated user."""

    def __init__(self, db: Database, user_id: str):
        if not user_id:
            raise ValueError("user_id is required")
        self._db = db
        self.user_id = user_id

    def table(self, name: str) -> Table:
        return Table(self._db, name, self.user_id)


class DataStore:
    def __init__(self, db: Database):
        self._db = db

    def for_user(self, user_id: str) -> UserScope:
        return UserScope(self._db, user_id)


def _encode_value(table: str, column: str, value: Any) -> Any:
    if column in JSON_COLUMNS.get(table, ()) and value is not None:
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _decode_row(table: str, row: Any) -> dict[str, Any]:
    data = dict(row)
    for column in JSON_COLUMNS.get(table, ()):
        raw = data.get(column)
        if isinstance(raw, str):
            try:
                data[column] = json.loads(raw)
            except json.JSONDecodeError:
                data[column] = [raw]
    return data
