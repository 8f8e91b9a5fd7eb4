from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import Any, Sequence

from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Dialect

from ..errors import ConversionError
from .base import Adapter
from .models import DbOperationType, Statement

# column names double as bind parameter names, so they stay plain words
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\Z")


class SqlAdapter(Adapter):
    """
    Statement builder for SQL dialects that support INSERT ... RETURNING.

    Identifiers are validated, then quoted with the dialect's identifier
    preparer. Bind parameters are named after their columns:

        adapter = SqlAdapter(engine.dialect)
        stmt = adapter.generate_update_query("users", ["id", "name"], ["id"])
        # UPDATE users SET name = :name WHERE id = :id RETURNING *

    RETURNING is what lets a record pick up server-generated values (ids,
    defaults) after a write, so dialects without it are rejected.
    """

    def __init__(self, dialect: Dialect | None = None) -> None:
        self.dialect = dialect if dialect is not None else postgresql.dialect()
        if not self.dialect.insert_returning:
            raise ValueError(
                f"SqlAdapter requires INSERT ... RETURNING support; "
                f"dialect {self.dialect.name!r} does not provide it"
            )
        self._preparer = self.dialect.identifier_preparer

    def _quote(self, name: str, kind: str) -> str:
        if not isinstance(name, str):
            raise TypeError(f"{kind} name must be str, not {type(name).__name__}")
        if not _IDENTIFIER_RE.match(name):
            raise ValueError(f"Unsafe {kind} name {name!r}")
        limit = self.dialect.max_identifier_length
        if len(name) > limit:
            raise ValueError(f"{kind} name {name!r} is longer than {limit} characters")
        return self._preparer.quote(name)

    def _where(self, keys: Sequence[str]) -> str:
        if not keys:
            raise ValueError("A keyed statement requires at least one key column")
        return " AND ".join(f"{self._quote(k, 'key column')} = :{k}" for k in keys)

    def generate_insert_query(self, table: str, columns: Sequence[str]) -> Statement:
        table_sql = self._quote(table, "table")
        if columns:
            col_names = ", ".join(self._quote(c, "column") for c in columns)
            placeholders = ", ".join(f":{c}" for c in columns)
            sql = f"INSERT INTO {table_sql} ({col_names}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {table_sql} DEFAULT VALUES"
        sql += " RETURNING *"
        return Statement(table, DbOperationType.INSERT, tuple(columns), sql)

    def generate_update_query(
        self, table: str, columns: Sequence[str], keys: Sequence[str]
    ) -> Statement:
        table_sql = self._quote(table, "table")
        where_sql = self._where(keys)
        cols = [c for c in columns if c not in keys]

        if not cols:
            # Nothing to write; re-read the row so the record still reconciles
            sql = f"SELECT * FROM {table_sql} WHERE {where_sql}"
        else:
            set_clause = ", ".join(f"{self._quote(c, 'column')} = :{c}" for c in cols)
            sql = f"UPDATE {table_sql} SET {set_clause} WHERE {where_sql}"
            if self.dialect.update_returning:
                sql += " RETURNING *"

        return Statement(table, DbOperationType.UPDATE, tuple(columns), sql)

    def generate_delete_query(self, table: str, columns: Sequence[str]) -> Statement:
        table_sql = self._quote(table, "table")
        sql = f"DELETE FROM {table_sql} WHERE {self._where(columns)}"
        return Statement(table, DbOperationType.DELETE, tuple(columns), sql)

    def sanitize(self, type_tag: str, value: Any) -> Any:
        if value is None:
            return None

        if self.dialect.name == "sqlite":
            # sqlite3 has no array, JSON or timezone-aware datetime binding
            if isinstance(value, (list, dict)):
                return json.dumps(value, default=_json_default)
            if isinstance(value, (datetime, date)):
                return value.isoformat()
            return value

        if type_tag == "json":
            return json.dumps(value, default=_json_default)
        return value

    def restore(self, type_tag: str, value: Any, array: bool = False) -> Any:
        # arrays are stored as JSON text on sqlite; other dialects return lists
        if not array or self.dialect.name != "sqlite":
            return value
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except ValueError:
                decoded = None
            if not isinstance(decoded, list):
                raise ConversionError(f"Expected a JSON array for {type_tag}[] column, got {value!r}")
            return decoded
        return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
