from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .data_types import DataType, get_data_type, has_data_type
from .errors import SchemaError, UnknownDataTypeError, UnknownFieldError


@dataclass(frozen=True)
class FieldProperties:
    array: bool = False
    primary_key: bool = False


@dataclass(frozen=True)
class FieldDef:
    """
    A single column of a record type.

    `properties` may be given as a plain mapping (e.g. {"primary_key": True});
    it is normalised into FieldProperties.
    """
    name: str
    type: str
    properties: FieldProperties = field(default_factory=FieldProperties)

    def __post_init__(self) -> None:
        if isinstance(self.properties, Mapping):
            object.__setattr__(self, "properties", FieldProperties(**self.properties))
        if not isinstance(self.name, str) or not self.name:
            raise SchemaError(f"Field name must be a non-empty string, got {self.name!r}")

    @property
    def data_type(self) -> DataType:
        return get_data_type(self.type)


@dataclass(frozen=True)
class Schema:
    """
    Immutable table binding shared by every instance of a record type.

    The name lookup is derived once at construction:

        schema = Schema(
            table="users",
            columns=(
                FieldDef("id", "serial", {"primary_key": True}),
                FieldDef("name", "string"),
                FieldDef("created_at", "datetime"),
            ),
        )
    """
    table: str
    columns: tuple[FieldDef, ...] = ()
    _lookup: Mapping[str, FieldDef] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        columns = tuple(self.columns)
        object.__setattr__(self, "columns", columns)

        lookup: dict[str, FieldDef] = {}
        for column in columns:
            if column.name in lookup:
                raise SchemaError(
                    f"Duplicate field {column.name!r} in schema for table {self.table!r}"
                )
            if not has_data_type(column.type):
                raise UnknownDataTypeError(
                    f"Unknown data type {column.type!r} for field {column.name!r}"
                )
            lookup[column.name] = column

        object.__setattr__(self, "_lookup", lookup)

    def field_list(self) -> list[str]:
        return [column.name for column in self.columns]

    def has_field(self, name: str) -> bool:
        return name in self._lookup

    def field_definition(self, name: str) -> FieldDef:
        try:
            return self._lookup[name]
        except KeyError:
            raise UnknownFieldError(
                f"Field {name!r} does not belong to table {self.table!r}"
            ) from None

    def is_array_field(self, name: str) -> bool:
        column = self._lookup.get(name)
        return bool(column and column.properties.array)

    def is_primary_key_field(self, name: str) -> bool:
        column = self._lookup.get(name)
        return bool(column and column.properties.primary_key)

    def primary_keys(self) -> list[str]:
        return [column.name for column in self.columns if column.properties.primary_key]


def field_def(name: str, type: str, **properties: Any) -> FieldDef:
    """Shorthand for FieldDef(name, type, FieldProperties(**properties))."""
    return FieldDef(name, type, FieldProperties(**properties))
