class RecordkitError(Exception):
    """Base exception for recordkit errors."""


class SchemaError(RecordkitError):
    """Schema definition is invalid or cannot support the requested operation."""


class UnknownDataTypeError(SchemaError):
    """A field declares a type tag the conversion registry does not know."""


class UnknownFieldError(RecordkitError, LookupError):
    """A field name does not belong to the record's schema."""


class ConversionError(RecordkitError, ValueError):
    """A value cannot be converted to the field's declared type."""


class InvalidDatabaseError(RecordkitError, TypeError):
    """The object passed as a database handle does not implement Database."""


class DbQueryError(RecordkitError):
    """Any failure while executing a statement against the database."""
