from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause


class DbOperationType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Statement:
    """
    A single executable statement produced by an Adapter.

    `columns` names the bind parameters in the order the record supplies
    their values.
    """
    table: str
    op_type: DbOperationType
    columns: tuple[str, ...]
    sql: str

    @property
    def clause(self) -> TextClause:
        return text(self.sql)

    def bind(self, params: list[Any]) -> dict[str, Any]:
        """Map positional parameter values onto the statement's column names."""
        if len(params) != len(self.columns):
            raise ValueError(
                f"Statement for {self.table} expects {len(self.columns)} params, "
                f"got {len(params)}"
            )
        return dict(zip(self.columns, params))


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
