from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from recordkit.data_types import DataType, get_data_type, has_data_type, register_data_type
from recordkit.errors import ConversionError, UnknownDataTypeError


@pytest.mark.parametrize(
    "tag, raw, expected",
    [
        ("int", "42", 42),
        ("int", 7.0, 7),
        ("serial", True, 1),
        ("float", "2.5", 2.5),
        ("float", 3, 3.0),
        ("string", 12, "12"),
        ("text", "body", "body"),
        ("boolean", "yes", True),
        ("boolean", "F", False),
        ("boolean", 0, False),
        ("json", '{"a": [1, 2]}', {"a": [1, 2]}),
        ("json", [1, "x"], [1, "x"]),
    ],
)
def test_builtin_conversions(tag, raw, expected) -> None:
    assert get_data_type(tag).convert(raw) == expected


@pytest.mark.parametrize(
    "tag, raw",
    [
        ("int", "4.2"),
        ("int", 4.5),
        ("int", object()),
        ("float", "abc"),
        ("boolean", "maybe"),
        ("string", {"a": 1}),
        ("datetime", "yesterday"),
        ("json", "{not json"),
        ("json", {"a": object()}),
    ],
)
def test_unconvertible_values_raise(tag, raw) -> None:
    with pytest.raises(ConversionError):
        get_data_type(tag).convert(raw)


def test_datetime_conversions_are_utc_aware() -> None:
    dt = get_data_type("datetime")

    naive = dt.convert("2024-01-02T03:04:05")
    offset = dt.convert("2024-01-02T05:04:05+02:00")
    epoch = dt.convert(0)

    assert naive == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert offset == naive
    assert offset.utcoffset() == timedelta(hours=2)
    assert epoch == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_unknown_tag_raises() -> None:
    assert not has_data_type("money")
    with pytest.raises(UnknownDataTypeError):
        get_data_type("money")


def test_custom_types_can_be_registered() -> None:
    class UpperType(DataType):
        name = "upper"

        def convert(self, value):
            return str(value).upper()

    register_data_type(UpperType())

    assert has_data_type("upper")
    assert get_data_type("upper").convert("abc") == "ABC"
