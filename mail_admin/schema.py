"""Declarative form schemas.

A schema is an ordered, named tuple of field definitions. Schemas are
registered once at startup and shared read-only by every form instance
built from them (see ``form_data.FormData``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import re
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional, Union

if TYPE_CHECKING:
    from .form_data import FormData


class SchemaError(Exception):
    pass


@dataclass(frozen=True)
class Static:
    options: tuple[tuple[str, str], ...]

    def values(self) -> list[str]:
        return [value for value, _ in self.options]


@dataclass(frozen=True)
class Dynamic:
    name: str


Source = Union[Static, Dynamic]


@dataclass(frozen=True)
class Text:
    pass


@dataclass(frozen=True)
class Select:
    source: Source
    multi: bool = False


FieldType = Union[Text, Select]


class Transformer(Enum):
    TRIM = "trim"
    LOWERCASE = "lowercase"

    def apply(self, value: str) -> str:
        if self is Transformer.TRIM:
            return value.strip()
        return value.lower()


RawValue = Union[str, list[str], None]


def _is_empty(value: RawValue) -> bool:
    if value is None:
        return True
    if isinstance(value, list):
        return not any(v for v in value)
    return value == ""


@dataclass(frozen=True)
class Required:
    message: str = "This field is required"

    def check(self, value: RawValue) -> Optional[str]:
        return self.message if _is_empty(value) else None


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class IsEmail:
    message: str = "Invalid e-mail address"

    def check(self, value: RawValue) -> Optional[str]:
        items = value if isinstance(value, list) else [value]
        for item in items:
            # Empty values are the business of Required.
            if item and not _EMAIL_RE.match(item):
                return self.message
        return None


def _items(value: RawValue) -> list[str]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


@dataclass(frozen=True)
class MinLength:
    length: int

    def check(self, value: RawValue) -> Optional[str]:
        # Each selected item is measured on its own.
        for item in _items(value):
            if item and len(item) < self.length:
                return f"Must be at least {self.length} characters"
        return None


@dataclass(frozen=True)
class MaxLength:
    length: int

    def check(self, value: RawValue) -> Optional[str]:
        for item in _items(value):
            if len(item) > self.length:
                return f"Must be at most {self.length} characters"
        return None


Validator = Union[Required, IsEmail, MinLength, MaxLength]


@dataclass(frozen=True)
class DisplayIf:
    field: str
    values: frozenset[str]

    def matches(self, current: RawValue) -> bool:
        if isinstance(current, list):
            return any(v in self.values for v in current)
        return (current or "") in self.values


def display_if_eq(field_name: str, values: Iterable[str]) -> DisplayIf:
    return DisplayIf(field=field_name, values=frozenset(values))


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    typ: FieldType = Text()
    default: Optional[str] = None
    transformers: tuple[Transformer, ...] = ()
    validators: tuple[Validator, ...] = ()
    display_if: Optional[DisplayIf] = None

    @property
    def is_multi(self) -> bool:
        return isinstance(self.typ, Select) and self.typ.multi


@dataclass(frozen=True)
class Schema:
    name: str
    fields: tuple[FieldDefinition, ...]
    _index: dict[str, FieldDefinition] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {f.name: f for f in self.fields})

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> Optional[FieldDefinition]:
        return self._index.get(name)


OptionProvider = Callable[[], Iterable[tuple[str, str]]]


def resolve_options(
    fd: FieldDefinition,
    providers: Optional[Mapping[str, OptionProvider]] = None,
) -> list[tuple[str, str]]:
    if not isinstance(fd.typ, Select):
        return []
    source = fd.typ.source
    if isinstance(source, Static):
        return list(source.options)
    provider = (providers or {}).get(source.name)
    if provider is None:
        return []
    return list(provider())


class Schemas:
    def __init__(self) -> None:
        self._schemas: dict[str, Schema] = {}

    def register(self, name: str, fields: Iterable[FieldDefinition]) -> Schema:
        if name in self._schemas:
            raise SchemaError(f"schema already registered: {name}")

        defs = tuple(fields)
        seen: set[str] = set()
        for fd in defs:
            if fd.name in seen:
                raise SchemaError(f"duplicate field {fd.name!r} in schema {name!r}")
            seen.add(fd.name)

        for fd in defs:
            if fd.display_if is not None and fd.display_if.field not in seen:
                raise SchemaError(
                    f"field {fd.name!r} in schema {name!r} depends on "
                    f"unknown field {fd.display_if.field!r}"
                )

        schema = Schema(name=name, fields=defs)
        self._schemas[name] = schema
        return schema

    def lookup(self, name: str) -> Schema:
        schema = self._schemas.get(name)
        if schema is None:
            raise SchemaError(f"unknown schema: {name}")
        return schema

    def build_form(self, name: str) -> FormData:
        from .form_data import FormData

        return FormData(self.lookup(name))

    def __contains__(self, name: object) -> bool:
        return name in self._schemas
