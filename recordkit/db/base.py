from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

from .models import QueryResult, Statement


class Adapter(ABC):
    """
    Turns a table name and column set into an executable Statement.

    Implementations own dialect details (quoting, placeholders, RETURNING).
    """

    @abstractmethod
    def generate_insert_query(self, table: str, columns: Sequence[str]) -> Statement:
        """INSERT the given columns; the statement should return the stored row."""
        ...

    @abstractmethod
    def generate_update_query(
        self, table: str, columns: Sequence[str], keys: Sequence[str]
    ) -> Statement:
        """UPDATE the non-key columns of the row identified by `keys`."""
        ...

    @abstractmethod
    def generate_delete_query(self, table: str, columns: Sequence[str]) -> Statement:
        """DELETE the row identified by `columns` (the primary key)."""
        ...

    @abstractmethod
    def sanitize(self, type_tag: str, value: Any) -> Any:
        """Convert a field value into a parameter the driver accepts."""
        ...

    def restore(self, type_tag: str, value: Any, array: bool = False) -> Any:
        """Undo `sanitize` for a value read back from storage."""
        return value


class Database(ABC):
    """
    Capability interface every storage backend implements.

    Records only talk to storage through `adapter` and `query`.
    """

    adapter: Adapter

    @abstractmethod
    async def query(self, statement: Statement, params: list[Any]) -> QueryResult:
        """
        Execute `statement` with positional `params`.

        Raises:
            DbQueryError: If execution fails
        """
        ...
