"""Value resolution for form controls.

A control's value comes from exactly one source, checked in order:

1. old input: the first value submitted for the field on the previous request
2. the bound model: the field whose form-binding name matches
3. the default passed to the control
4. the empty string

Form-binding names come from a ``form`` entry in the field's metadata:

    class Profile(BaseModel):
        display_name: str = Field(json_schema_extra={"form": "name"})

    @dataclass
    class Profile:
        display_name: str = field(metadata={"form": "name"})

Fields without one are bound by their pydantic alias or attribute name.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, NamedTuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)

FORM_TAG = "form"
MESSAGE_TAG = "message"

TRUE_VALUES = frozenset({"1", "true"})
FALSE_VALUES = frozenset({"0", "false"})


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

FieldResolver = Callable[[Any, str], Any]


class FieldBinding(NamedTuple):
    """Maps a record attribute to the name it uses in form encoding."""

    attr: str
    form_name: str
    alias: str | None = None
    message: str | None = None


def _pydantic_bindings(cls: type[BaseModel]) -> list[FieldBinding]:
    bindings = []
    for attr, info in cls.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        form_name = extra.get(FORM_TAG) or info.alias or attr
        bindings.append(FieldBinding(attr, form_name, info.alias, extra.get(MESSAGE_TAG)))
    return bindings


def _dataclass_bindings(cls: type) -> list[FieldBinding]:
    return [
        FieldBinding(f.name, f.metadata.get(FORM_TAG) or f.name, None, f.metadata.get(MESSAGE_TAG))
        for f in dataclasses.fields(cls)
    ]


@lru_cache(maxsize=256)
def bindings_for(cls: type) -> dict[str, FieldBinding]:
    """Return the form bindings of a record class keyed by form name.

    Only pydantic models and dataclasses declare bindings; other classes
    return an empty mapping.
    """
    if issubclass(cls, BaseModel):
        bindings = _pydantic_bindings(cls)
    elif dataclasses.is_dataclass(cls):
        bindings = _dataclass_bindings(cls)
    else:
        bindings = []
    return {binding.form_name: binding for binding in bindings}


def lookup_field(model: Any, name: str) -> Any:
    """Read the top-level field bound to *name*, or MISSING."""
    if model is None:
        return MISSING
    if isinstance(model, Mapping):
        return model.get(name, MISSING)

    cls = type(model)
    if isinstance(model, BaseModel) or dataclasses.is_dataclass(cls):
        binding = bindings_for(cls).get(name)
        if binding is None:
            return MISSING
        return getattr(model, binding.attr, MISSING)

    if name.startswith("_"):
        return MISSING
    value = getattr(model, name, MISSING)
    if callable(value):
        return MISSING
    return value


def dotted_path_resolver(model: Any, name: str) -> Any:
    """Resolve ``address.city`` style names through nested records."""
    value = model
    for part in name.split("."):
        value = lookup_field(value, part)
        if value is MISSING:
            logger.debug("No field %r on path %r", part, name)
            return MISSING
    return value


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def to_string(value: Any) -> str:
    """Convert a model value to the string a text-like control renders."""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, Enum):
        return to_string(value.value)
    if isinstance(value, str):
        # Drop str subclasses such as Markup so the value is always escaped
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if _is_sequence(value):
        items = to_list(value)
        return items[0] if items else ""

    logger.debug("Cannot render %s as a form value", type(value).__name__)
    return ""


def to_list(value: Any) -> list[str]:
    """Convert a model value to the list of strings used for membership checks."""
    if value is None or value is MISSING:
        return []
    if isinstance(value, (set, frozenset)):
        return sorted(to_string(item) for item in value)
    if _is_sequence(value):
        return [to_string(item) for item in value]
    return [to_string(value)]


def value_matches(value: Any, candidate: str) -> bool:
    """Whether a checkbox or radio declaring *candidate* is selected by *value*."""
    if isinstance(value, bool):
        accepted = TRUE_VALUES if value else FALSE_VALUES
        return candidate.lower() in accepted
    if _is_sequence(value):
        return candidate in to_list(value)
    return to_string(value) == candidate


class ValueResolver:
    """Resolve control values from old input, a bound model and defaults."""

    def __init__(
        self,
        old_input: Mapping[str, Sequence[str]],
        model: Any = None,
        field_resolver: FieldResolver | None = None,
    ):
        self._old_input = old_input
        self._model = model
        self._field_resolver = field_resolver or lookup_field

    def submitted(self, name: str) -> Sequence[str] | None:
        """Return the submitted values for *name* when the field was submitted."""
        values = self._old_input.get(name)
        if values:
            return values
        return None

    def model_value(self, name: str) -> Any:
        if self._model is None:
            return MISSING
        return self._field_resolver(self._model, name)

    def value(self, name: str, default: Any = None) -> str:
        submitted = self.submitted(name)
        if submitted is not None:
            return submitted[0]

        raw = self.model_value(name)
        if raw is not MISSING:
            return to_string(raw)

        if default is not None:
            return to_string(default)
        return ""

    def values(self, name: str, default: Any = None) -> list[str]:
        submitted = self.submitted(name)
        if submitted is not None:
            return list(submitted)

        raw = self.model_value(name)
        if raw is not MISSING:
            return to_list(raw)

        return to_list(default)

    def matches(self, name: str, candidate: str, default: Any = None) -> bool:
        submitted = self.submitted(name)
        if submitted is not None:
            return candidate in submitted

        raw = self.model_value(name)
        if raw is not MISSING:
            return value_matches(raw, candidate)

        if default is not None:
            return value_matches(default, candidate)
        return False
