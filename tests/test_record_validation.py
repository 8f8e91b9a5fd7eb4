from __future__ import annotations

import pytest

from recordkit.errors import UnknownFieldError


def test_defaults_are_validated_on_construction(user_cls) -> None:
    user = user_cls()

    assert user.has_errors() is True
    assert user.get_errors() == {"email": ["Email is required"]}


def test_all_rules_for_a_field_run(user_cls) -> None:
    user = user_cls()

    user.set("email", "")
    assert user.get_errors()["email"] == ["Email is required", "Email must contain @"]

    user.set("email", "nobody")
    assert user.get_errors()["email"] == ["Email must contain @"]


def test_fixing_a_field_clears_its_errors(user_cls) -> None:
    user = user_cls({"email": "bad"})
    assert user.error_object() == {"email": ["Email must contain @"]}

    user.set("email", "ok@example.com")

    assert user.has_errors() is False
    assert user.error_object() is None
    assert user.get_errors() == {}


def test_record_level_rules_use_all_values(user_cls) -> None:
    user = user_cls({"email": "a@b.c", "age": 30})

    assert user.get_errors() == {"*": ["Adults must have a name"]}

    user.set("name", "Ann")

    assert user.error_object() is None


def test_record_errors_are_recomputed_not_merged(user_cls) -> None:
    user = user_cls({"email": "a@b.c", "age": 30})

    user.set("age", 31)
    user.set("age", 32)

    assert user.get_errors()["*"] == ["Adults must have a name"]


def test_validation_only_touches_the_set_field(user_cls) -> None:
    user = user_cls({"email": "a@b.c"})
    user.set("age", -1, validate=False)
    assert user.error_object() is None

    user.set("name", "Bob")

    assert user.error_object() is None
    assert user._validate() is True
    assert user.get_errors() == {"age": ["Age must be positive"]}


def test_storage_load_skips_validation_and_drops_stale_errors(user_cls) -> None:
    user = user_cls()
    assert user.get_errors() == {"email": ["Email is required"]}

    user.load({"email": "not-an-email", "age": -5}, from_storage=True)

    assert user.error_object() is None


def test_storage_load_keeps_errors_of_fields_it_did_not_touch(user_cls) -> None:
    user = user_cls()

    user.load({"id": 3}, from_storage=True)

    assert user.get_errors() == {"email": ["Email is required"]}


def test_get_errors_returns_a_defensive_copy(user_cls) -> None:
    user = user_cls()

    errors = user.get_errors()
    errors["email"].append("injected")
    errors["name"] = ["injected"]

    assert user.get_errors() == {"email": ["Email is required"]}


def test_set_and_clear_error(user_cls) -> None:
    user = user_cls({"email": "a@b.c"})

    user.set_error("_query", "boom")
    user.set_error("name", "taken")
    assert user.get_errors() == {"_query": ["boom"], "name": ["taken"]}

    user.clear_error("_query")
    user.clear_error("name")
    assert user.has_errors() is False


def test_validates_unknown_field_raises(user_cls) -> None:
    user = user_cls()

    with pytest.raises(UnknownFieldError):
        user.validates("nope", "message", lambda v: True)


def test_set_error_unknown_key_raises(user_cls) -> None:
    with pytest.raises(UnknownFieldError):
        user_cls().set_error("nope", "message")
