from .config import DbConfig
from .errors import (
    ConversionError,
    DbQueryError,
    InvalidDatabaseError,
    RecordkitError,
    SchemaError,
    UnknownDataTypeError,
    UnknownFieldError,
)
from .record import Outcome, Record
from .schema import FieldDef, FieldProperties, Schema, field_def

__all__ = [
    "Record",
    "Outcome",
    "Schema",
    "FieldDef",
    "FieldProperties",
    "field_def",
    "DbConfig",
    "RecordkitError",
    "SchemaError",
    "UnknownDataTypeError",
    "UnknownFieldError",
    "ConversionError",
    "InvalidDatabaseError",
    "DbQueryError",
]
