from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from .schema import FieldDefinition, RawValue, Schema

_TRUTHY = {"1", "true", "on", "yes"}
_FALSY = {"0", "false", "off", "no", ""}


class FormStateError(RuntimeError):
    pass


class FormState(Enum):
    UNPOPULATED = "unpopulated"
    POPULATED = "populated"
    EDITING = "editing"
    VALIDATED_OK = "validated_ok"
    VALIDATED_ERRORS = "validated_errors"
    SUBMITTED = "submitted"


def decode(raw: Optional[str], typ: Union[type, Callable[[str], Any]] = str) -> Any:
    """Decode a stored string into ``typ``.

    Returns None when the value is unset or does not parse; never raises
    for malformed input.
    """
    if raw is None:
        return None
    if typ is str:
        return raw
    if typ is bool:
        s = raw.strip().lower()
        if s in _TRUTHY:
            return True
        if s in _FALSY:
            return False
        return None
    if isinstance(typ, type) and issubclass(typ, Enum):
        try:
            return typ(raw)
        except ValueError:
            return None
    try:
        return typ(raw)
    except (ValueError, TypeError, KeyError, ArithmeticError):
        return None


class FormData:
    """Current values and validation state of one rendered form."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self.values: dict[str, Union[str, list[str]]] = {}
        self.errors: dict[str, str] = {}
        self.state = FormState.UNPOPULATED

        for fd in schema.fields:
            if fd.default is None:
                continue
            if fd.is_multi:
                self.values[fd.name] = [fd.default] if fd.default else []
            else:
                self.values[fd.name] = fd.default

    def _ensure_mutable(self) -> None:
        if self.state is FormState.SUBMITTED:
            raise FormStateError(
                f"form {self.schema.name!r} was already submitted"
            )

    def set(self, name: str, value: Union[str, Iterable[str]]) -> None:
        self._ensure_mutable()
        fd = self.schema.get(name)
        if fd is None:
            # Unknown names are ignored so stray request parameters are harmless.
            return

        if fd.is_multi:
            if isinstance(value, str):
                self.values[name] = [value] if value else []
            else:
                self.values[name] = [str(v) for v in value]
        elif isinstance(value, str):
            self.values[name] = value
        else:
            items = list(value)
            self.values[name] = str(items[0]) if items else ""

        self.state = FormState.EDITING

    def load(self, submitted: Mapping[str, Union[str, Iterable[str]]]) -> None:
        for fd in self.schema.fields:
            if fd.name in submitted:
                self.set(fd.name, submitted[fd.name])

    def raw(self, name: str) -> RawValue:
        value = self.values.get(name)
        if isinstance(value, list):
            return list(value)
        return value

    def value(self, name: str, typ: Union[type, Callable[[str], Any]] = str) -> Any:
        stored = self.values.get(name)
        if isinstance(stored, list):
            stored = stored[0] if stored else None
        return decode(stored, typ)

    def array_value(self, name: str) -> list[str]:
        stored = self.values.get(name)
        if stored is None:
            return []
        if isinstance(stored, list):
            return list(stored)
        return [stored] if stored else []

    def is_visible(self, name: str) -> bool:
        fd = self.schema.get(name)
        if fd is None:
            return False
        if fd.display_if is None:
            return True
        return fd.display_if.matches(self.values.get(fd.display_if.field))

    def _transform(self, fd: FieldDefinition) -> RawValue:
        stored = self.values.get(fd.name)
        if stored is None or not fd.transformers:
            return self.raw(fd.name)

        def apply(s: str) -> str:
            for t in fd.transformers:
                s = t.apply(s)
            return s

        if isinstance(stored, list):
            stored = [apply(v) for v in stored]
        else:
            stored = apply(stored)
        self.values[fd.name] = stored
        return self.raw(fd.name)

    def validate(self) -> bool:
        """Validate every visible field in schema order.

        Hidden fields impose no constraints. Only the first failing
        validator of a field is recorded. Running it twice without
        changes yields the same errors.
        """
        self._ensure_mutable()

        errors: dict[str, str] = {}
        for fd in self.schema.fields:
            if not self.is_visible(fd.name):
                continue
            current = self._transform(fd)
            for validator in fd.validators:
                message = validator.check(current)
                if message is not None:
                    errors[fd.name] = message
                    break

        self.errors = errors
        self.state = FormState.VALIDATED_ERRORS if errors else FormState.VALIDATED_OK
        return not errors

    def set_error(self, name: str, message: str) -> None:
        self._ensure_mutable()
        self.errors[name] = message
        self.state = FormState.VALIDATED_ERRORS

    def error(self, name: str) -> Optional[str]:
        return self.errors.get(name)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def mark_populated(self) -> None:
        self._ensure_mutable()
        self.state = FormState.POPULATED

    def mark_submitted(self) -> None:
        if self.state is not FormState.VALIDATED_OK:
            raise FormStateError(
                f"form {self.schema.name!r} must validate before submission"
            )
        self.state = FormState.SUBMITTED
