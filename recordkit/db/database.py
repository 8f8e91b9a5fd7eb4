from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..config import DbConfig
from ..errors import DbQueryError
from .adapter import SqlAdapter
from .base import Adapter, Database
from .models import QueryResult, Statement

logger = logging.getLogger(__name__)


class SqlAlchemyDatabase(Database):
    """
    Database handle backed by a SQLAlchemy AsyncEngine.

    Every query runs in its own short transaction: commit on success,
    rollback on failure.

    Usage:
        db = SqlAlchemyDatabase.from_config(DbConfig.from_env())
        errors, user = await user.save(db)
        await db.dispose()
    """

    def __init__(self, engine: AsyncEngine, adapter: Adapter | None = None) -> None:
        self.engine = engine
        self.adapter = adapter if adapter is not None else SqlAdapter(engine.dialect)

    @classmethod
    def from_config(cls, config: DbConfig) -> "SqlAlchemyDatabase":
        engine = create_async_engine(
            config.url,
            echo=config.echo,
            pool_pre_ping=config.pool_pre_ping,
        )
        return cls(engine)

    async def query(self, statement: Statement, params: list[Any]) -> QueryResult:
        """
        Execute the statement and return any rows it produced.

        Raises:
            DbQueryError: If the driver or database rejects the statement
        """
        bound = statement.bind(params)
        logger.debug("Executing %s on %s: %s", statement.op_type.value, statement.table, statement.sql)

        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(statement.clause, bound)
                rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
        except SQLAlchemyError as exc:
            raise DbQueryError(str(exc)) from exc

        return QueryResult(rows=rows)

    async def dispose(self) -> None:
        await self.engine.dispose()
