from __future__ import annotations

from typing import Any

import pytest

from recordkit import Record, Schema, field_def
from recordkit.db.adapter import SqlAdapter
from recordkit.db.base import Database
from recordkit.db.models import QueryResult, Statement
from recordkit.errors import DbQueryError


class FakeDatabase(Database):
    """
    In-memory Database that records every statement it is asked to run.

    `rows` are returned for each query; `error` makes every query fail.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None, error: str | None = None) -> None:
        self.adapter = SqlAdapter()
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple[Statement, list[Any]]] = []

    async def query(self, statement: Statement, params: list[Any]) -> QueryResult:
        self.calls.append((statement, list(params)))
        if self.error is not None:
            raise DbQueryError(self.error)
        return QueryResult(rows=[dict(row) for row in self.rows])

    @property
    def last_statement(self) -> Statement:
        return self.calls[-1][0]

    @property
    def last_params(self) -> list[Any]:
        return self.calls[-1][1]


class Note(Record):
    schema = Schema(
        table="notes",
        columns=(
            field_def("id", "serial", primary_key=True),
            field_def("title", "string"),
            field_def("body", "text"),
            field_def("tags", "string", array=True),
            field_def("scores", "int", array=True),
            field_def("created_at", "datetime"),
        ),
    )


class User(Record):
    schema = Schema(
        table="users",
        columns=(
            field_def("id", "serial", primary_key=True),
            field_def("name", "string"),
            field_def("email", "string"),
            field_def("age", "int"),
            field_def("created_at", "datetime"),
        ),
    )
    external_interface = ("id", "name", "created_at")

    def pre_initialize(self) -> None:
        self.validates("email", "Email is required", lambda v: bool(v))
        self.validates("email", "Email must contain @", lambda v: v is None or "@" in v)
        self.validates("age", "Age must be positive", lambda v: v is None or v > 0)
        self.validates(
            "*",
            "Adults must have a name",
            lambda data: data["age"] is None or data["age"] < 18 or bool(data["name"]),
        )


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def note_cls() -> type[Note]:
    return Note


@pytest.fixture
def user_cls() -> type[User]:
    return User
