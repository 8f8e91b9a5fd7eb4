from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from .errors import ConversionError, UnknownDataTypeError


class DataType:
    """
    Converter from raw input to a field's declared Python type.

    Subclasses implement `convert`. `None` never reaches a converter; the
    record normalises missing values before conversion.
    """

    name: str = ""

    def convert(self, value: Any) -> Any:
        raise NotImplementedError

    def _fail(self, value: Any) -> ConversionError:
        return ConversionError(f"Cannot convert {value!r} to {self.name}")


class IntegerType(DataType):
    name = "int"

    def convert(self, value: Any) -> int:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not value.is_integer():
                raise self._fail(value)
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise self._fail(value) from None
        raise self._fail(value)


class SerialType(IntegerType):
    name = "serial"


class FloatType(DataType):
    name = "float"

    def convert(self, value: Any) -> float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise self._fail(value) from None
        raise self._fail(value)


class StringType(DataType):
    name = "string"

    def convert(self, value: Any) -> str:
        if isinstance(value, (dict, list, tuple, set)):
            raise self._fail(value)
        return str(value)


class TextType(StringType):
    name = "text"


_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "0", ""})


class BooleanType(DataType):
    name = "boolean"

    def convert(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise self._fail(value)


class DateTimeType(DataType):
    """
    Accepts datetimes, ISO-8601 strings and POSIX timestamps.

    Naive values are assumed to be UTC.
    """

    name = "datetime"

    def convert(self, value: Any) -> datetime:
        if isinstance(value, datetime):
            result = value
        elif isinstance(value, str):
            try:
                result = datetime.fromisoformat(value.strip())
            except ValueError:
                raise self._fail(value) from None
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            result = datetime.fromtimestamp(value, tz=timezone.utc)
        else:
            raise self._fail(value)

        if result.tzinfo is None:
            result = result.replace(tzinfo=timezone.utc)
        return result


class JsonType(DataType):
    """
    Structured JSON value.

    Strings are treated as encoded JSON documents, which is how most drivers
    hand back JSON columns.
    """

    name = "json"

    def convert(self, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                raise self._fail(value) from None
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            raise self._fail(value) from None
        return value


_REGISTRY: dict[str, DataType] = {}


def register_data_type(data_type: DataType) -> DataType:
    """Register (or replace) the converter for `data_type.name`."""
    if not data_type.name:
        raise ValueError("data type must declare a non-empty name")
    _REGISTRY[data_type.name] = data_type
    return data_type


def get_data_type(tag: str) -> DataType:
    try:
        return _REGISTRY[tag]
    except KeyError:
        raise UnknownDataTypeError(f"Unknown data type {tag!r}") from None


def has_data_type(tag: str) -> bool:
    return tag in _REGISTRY


for _data_type in (
    SerialType(),
    IntegerType(),
    FloatType(),
    StringType(),
    TextType(),
    BooleanType(),
    DateTimeType(),
    JsonType(),
):
    register_data_type(_data_type)
