from .adapter import SqlAdapter
from .base import Adapter, Database
from .database import SqlAlchemyDatabase
from .models import DbOperationType, QueryResult, Statement

__all__ = [
    "Adapter",
    "Database",
    "SqlAdapter",
    "SqlAlchemyDatabase",
    "Statement",
    "QueryResult",
    "DbOperationType",
]
