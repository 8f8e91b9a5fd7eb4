from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Coroutine, Mapping, NamedTuple, Optional

from .db.base import Adapter, Database
from .db.metrics import observe_db_write, observe_save_rejected
from .db.models import QueryResult, Statement
from .errors import DbQueryError, InvalidDatabaseError, SchemaError
from .schema import FieldDef, Schema

logger = logging.getLogger(__name__)

RECORD_KEY = "*"
QUERY_KEY = "_query"
CREATED_AT = "created_at"
NOT_SAVED_MESSAGE = "Model has not been saved"

ErrorObject = dict[str, list[str]]
Predicate = Callable[[Any], bool]
Callback = Callable[[Optional[ErrorObject], "Record"], None]


class Outcome(NamedTuple):
    """Result of a save/destroy: `errors` is None when nothing went wrong."""
    errors: Optional[ErrorObject]
    record: "Record"


@dataclass(frozen=True)
class _Rule:
    message: str
    predicate: Predicate


class Record:
    """
    One schema-bound row: current values, dirty flags and validation errors.

    Declare a record type by subclassing and assigning an immutable schema:

        class User(Record):
            schema = Schema(
                table="users",
                columns=(
                    field_def("id", "serial", primary_key=True),
                    field_def("email", "string"),
                    field_def("created_at", "datetime"),
                ),
            )

            def pre_initialize(self) -> None:
                self.validates("email", "Email is required", lambda v: bool(v))

    Construction order is pre_initialize() -> bind empty state and validate
    defaults -> load(data, from_storage) -> post_initialize(). Rules must be
    registered in pre_initialize to apply to seeded data.

    Persistence (save/destroy) returns an asyncio.Task that completes with an
    Outcome. At most one persistence call may be in flight per instance.
    """

    schema: ClassVar[Schema] = Schema(table="")
    external_interface: ClassVar[tuple[str, ...]] = ("id", "created_at")

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not isinstance(cls.schema, Schema):
            raise SchemaError(f"{cls.__name__}.schema must be a Schema instance")

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        from_storage: bool = False,
    ) -> None:
        self._validations: dict[str, list[_Rule]] = {}

        self.pre_initialize()
        self._initialize()
        if data is not None:
            self.load(data, from_storage)
        self.post_initialize()

    @classmethod
    def hydrate(cls, database: Database, row: Mapping[str, Any]) -> "Record":
        """
        Build a persisted record from a row fetched outside of save().

        Values are passed back through the database adapter first, undoing
        any encoding applied when they were written.
        """
        cls._require_database(database)
        return cls(cls._restore_row(database.adapter, row), from_storage=True)

    def __repr__(self) -> str:
        keys = ", ".join(f"{k}={self._values[k]!r}" for k in self.schema.primary_keys())
        return f"<{type(self).__name__} {keys} persisted={self._in_storage}>"

    def pre_initialize(self) -> None:
        """Hook run before state is bound. Register validation rules here."""

    def post_initialize(self) -> None:
        """Hook run after seed data (if any) has been loaded."""

    def _initialize(self) -> None:
        fields = self.field_list()

        self._in_storage = False
        self._values: dict[str, Any] = dict.fromkeys(fields)
        self._dirty: dict[str, bool] = dict.fromkeys(fields, False)
        self._errors: ErrorObject = {}

        self._validate()

    # Schema binding

    def table_name(self) -> str:
        return self.schema.table

    def field_list(self) -> list[str]:
        return self.schema.field_list()

    def field_definitions(self) -> list[FieldDef]:
        return list(self.schema.columns)

    def has_field(self, field: str) -> bool:
        return self.schema.has_field(field)

    def field_definition(self, field: str) -> FieldDef:
        """Raises UnknownFieldError for fields outside the schema."""
        return self.schema.field_definition(field)

    def is_array_field(self, field: str) -> bool:
        return self.schema.is_array_field(field)

    def is_primary_key_field(self, field: str) -> bool:
        return self.schema.is_primary_key_field(field)

    def in_storage(self) -> bool:
        return self._in_storage

    # State tracking

    def get(self, field: str) -> Any:
        self.field_definition(field)
        return self._values[field]

    def set(
        self,
        field: str,
        value: Any,
        validate: bool = True,
        log_change: bool = True,
    ) -> Any:
        """
        Convert and store a field value.

        Array fields wrap scalars into a one-element list and convert each
        element. The field's dirty flag is reset to the outcome of this call:
        True only when the value changed and `log_change` is set. Validation
        for the field (and whole-record rules) runs when `validate` is set and
        either the value changed or `log_change` is off.

        Args:
            field: Schema field name
            value: Raw input; None clears the field
            validate: Re-run validation for this field
            log_change: Record the write as a pending change

        Returns:
            The input value, before conversion

        Raises:
            UnknownFieldError: If `field` is not in the schema
            ConversionError: If the value cannot be converted
        """
        definition = self.field_definition(field)
        data_type = definition.data_type

        new_value: Any = None
        if value is not None:
            if definition.properties.array:
                items = value if isinstance(value, (list, tuple)) else [value]
                new_value = [data_type.convert(item) for item in items]
            else:
                new_value = data_type.convert(value)

        # list != list compares element-wise, so differing lengths count too
        changed = new_value != self._values[field]
        if changed:
            self._values[field] = new_value

        self._dirty[field] = changed and log_change

        if validate and (changed or not log_change):
            self._validate([field])

        return value

    def load(self, data: Mapping[str, Any], from_storage: bool = False) -> "Record":
        """
        Ingest a mapping of field values.

        User input (`from_storage=False`) is validated and marked dirty, and a
        new record gets a `created_at` timestamp. Storage rows are trusted:
        no validation, no dirty flags, and the record becomes persisted.
        Errors cached for the reloaded fields (and record-level errors) are
        dropped, since stored data is taken as valid.
        Keys that are not schema fields are ignored.
        """
        if not from_storage and not self._in_storage and self.has_field(CREATED_AT):
            self.set(CREATED_AT, datetime.now(timezone.utc))

        for field in self.field_list():
            if field in data:
                self.set(field, data[field], validate=not from_storage, log_change=not from_storage)
                if from_storage:
                    self.clear_error(field)

        if from_storage:
            self.clear_error(RECORD_KEY)
            self._in_storage = True

        return self

    def has_changed(self, field: str | None = None) -> bool:
        if field is None:
            return any(self._dirty.values())
        self.field_definition(field)
        return self._dirty[field]

    def changed_fields(self) -> list[str]:
        return [field for field in self.field_list() if self._dirty[field]]

    def to_object(self) -> dict[str, Any]:
        return {
            key: list(value) if isinstance(value, list) else value
            for key, value in self._values.items()
        }

    def to_std_object(self) -> dict[str, Any]:
        return {
            key: self._values[key]
            for key in self.external_interface
            if self.has_field(key)
        }

    # Validation

    def validates(self, field: str, message: str, predicate: Predicate) -> None:
        """
        Register a validation rule.

        `predicate` receives the field's value, or for the "*" key a snapshot
        of every field value, and returns True when valid. Every registered
        rule runs; each failure appends `message` to the key's errors.
        """
        if field != RECORD_KEY:
            self.field_definition(field)
        self._validations.setdefault(field, []).append(_Rule(message, predicate))

    def _validate(self, fields: list[str] | None = None) -> bool:
        self.clear_error(RECORD_KEY)
        invalid = False

        for field in fields if fields is not None else self.field_list():
            self.clear_error(field)
            value = self._values[field]
            for rule in self._validations.get(field, ()):
                if not rule.predicate(value):
                    self.set_error(field, rule.message)
                    invalid = True

        snapshot = self.to_object()
        for rule in self._validations.get(RECORD_KEY, ()):
            if not rule.predicate(snapshot):
                self.set_error(RECORD_KEY, rule.message)
                invalid = True

        return invalid

    def set_error(self, key: str, message: str) -> None:
        if key not in (RECORD_KEY, QUERY_KEY):
            self.field_definition(key)
        self._errors.setdefault(key, []).append(message)

    def clear_error(self, key: str) -> None:
        self._errors.pop(key, None)

    def has_errors(self) -> bool:
        return any(self._errors.values())

    def get_errors(self) -> ErrorObject:
        return {key: list(messages) for key, messages in self._errors.items() if messages}

    def error_object(self) -> ErrorObject | None:
        return self.get_errors() if self.has_errors() else None

    # Persistence

    def save(self, database: Database, callback: Callback | None = None) -> asyncio.Task:
        """
        Persist the record: INSERT when new, UPDATE of changed columns otherwise.

        Column sets and parameters are computed before this returns; the
        statement itself runs in a task on the current event loop. A record
        with errors is never written; its errors are reported through the
        task instead.

        Usage:
            errors, user = await user.save(db)
            if errors:
                ...

        Returns:
            Task resolving to Outcome(error_object, record). `callback`, if
            given, is invoked once with the same two values.

        Raises:
            InvalidDatabaseError: If `database` is not a Database
            SchemaError: If a persisted record's schema has no primary key
            RuntimeError: If there is no running event loop
        """
        self._require_database(database)
        self.clear_error(QUERY_KEY)
        table = self.table_name()

        if self.has_errors():
            logger.debug("Save of %s skipped; record has errors: %s", table, self._errors)
            observe_save_rejected(table)
            return self._schedule(callback, self._finish, Outcome(self.get_errors(), self))

        adapter = database.adapter
        if not self._in_storage:
            columns = [
                field for field in self.field_list()
                if not self.is_primary_key_field(field) and self._values[field] is not None
            ]
            statement = adapter.generate_insert_query(table, columns)
        else:
            keys = self._primary_keys("update")
            columns = keys + [
                field for field in self.changed_fields()
                if not self.is_primary_key_field(field)
            ]
            statement = adapter.generate_update_query(table, columns, keys)

        params = self._params(database, columns)
        return self._schedule(callback, self._save, database, statement, params)

    def destroy(self, database: Database, callback: Callback | None = None) -> asyncio.Task:
        """
        Delete the stored row identified by the primary key.

        A record that was never saved (or is already deleted) completes with
        a "_query" error and no I/O.

        Raises:
            InvalidDatabaseError: If `database` is not a Database
            SchemaError: If the schema has no primary key
            RuntimeError: If there is no running event loop
        """
        self._require_database(database)
        self.clear_error(QUERY_KEY)

        if not self._in_storage:
            return self._schedule(
                callback, self._finish, Outcome({QUERY_KEY: [NOT_SAVED_MESSAGE]}, self)
            )

        keys = self._primary_keys("delete")
        statement = database.adapter.generate_delete_query(self.table_name(), keys)
        params = self._params(database, keys)
        return self._schedule(callback, self._destroy, database, statement, params)

    async def _save(self, database: Database, statement: Statement, params: list[Any]) -> Outcome:
        result = await self._execute(database, statement, params)
        if result is not None and result.rows:
            self.load(self._restore_row(database.adapter, result.rows[0]), from_storage=True)
        return Outcome(self.error_object(), self)

    async def _destroy(self, database: Database, statement: Statement, params: list[Any]) -> Outcome:
        result = await self._execute(database, statement, params)
        if result is not None:
            self._in_storage = False
            logger.info("Deleted row from %s", statement.table)
        return Outcome(self.error_object(), self)

    async def _finish(self, outcome: Outcome) -> Outcome:
        return outcome

    async def _execute(
        self, database: Database, statement: Statement, params: list[Any]
    ) -> QueryResult | None:
        """Run the statement; storage failures become a "_query" error."""
        start_time = time.monotonic()
        status = "success"

        try:
            return await database.query(statement, params)
        except DbQueryError as exc:
            status = "error"
            logger.warning(
                "%s on %s failed: %s", statement.op_type.value, statement.table, exc
            )
            self.set_error(QUERY_KEY, str(exc))
            return None
        finally:
            observe_db_write(
                statement.table, statement.op_type.value, status, time.monotonic() - start_time
            )

    def _schedule(
        self,
        callback: Callback | None,
        coro_fn: Callable[..., Coroutine[Any, Any, Outcome]],
        *args: Any,
    ) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        task = loop.create_task(coro_fn(*args))
        if callback is not None:
            task.add_done_callback(lambda done: callback(*done.result()))
        return task

    @classmethod
    def _restore_row(cls, adapter: Adapter, row: Mapping[str, Any]) -> dict[str, Any]:
        schema = cls.schema
        return {
            key: adapter.restore(
                schema.field_definition(key).type, value, schema.is_array_field(key)
            )
            for key, value in row.items()
            if schema.has_field(key)
        }

    def _params(self, database: Database, columns: list[str]) -> list[Any]:
        return [
            database.adapter.sanitize(self.field_definition(column).type, self._values[column])
            for column in columns
        ]

    def _primary_keys(self, operation: str) -> list[str]:
        keys = self.schema.primary_keys()
        if not keys:
            raise SchemaError(
                f"Cannot {operation} {type(self).__name__}: "
                f"table {self.table_name()!r} has no primary key"
            )
        return keys

    @staticmethod
    def _require_database(database: Any) -> None:
        if not isinstance(database, Database):
            raise InvalidDatabaseError("Must provide a valid Database to save to")
