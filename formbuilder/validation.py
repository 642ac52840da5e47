"""Validation adapter: run pydantic validation and report errors by form name."""

from __future__ import annotations

import dataclasses
import logging
import types
import typing
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from formbuilder.core import normalize_multi_map
from formbuilder.exceptions import RecordShapeError
from formbuilder.values import FieldBinding, bindings_for

logger = logging.getLogger(__name__)

T = TypeVar("T")

FORM_ERROR_KEY = "__form__"

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _is_record_class(cls: Any) -> bool:
    return isinstance(cls, type) and (issubclass(cls, BaseModel) or dataclasses.is_dataclass(cls))


def _strip_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


@lru_cache(maxsize=256)
def _annotations(cls: type) -> dict[str, Any]:
    if issubclass(cls, BaseModel):
        hints = {attr: info.annotation for attr, info in cls.model_fields.items()}
    else:
        hints = typing.get_type_hints(cls)
    return {attr: _strip_optional(hint) for attr, hint in hints.items()}


@lru_cache(maxsize=256)
def _adapter(cls: type) -> TypeAdapter:
    return TypeAdapter(cls)


def _input_key(binding: FieldBinding) -> str:
    """Key pydantic expects for a field in raw input."""
    return binding.alias or binding.attr


class FormValidator:
    """Validates records and submitted data, keying errors by form name.

    Holds no per-call state, so one instance can be shared by every request.
    """

    def validate(self, record: Any) -> tuple[dict[str, str], bool]:
        """Validate a pydantic model or dataclass instance.

        Returns ``(errors, failed)`` where *errors* maps each failing field's
        form name to its first error message. Raises RecordShapeError when
        *record* is not a record instance.
        """
        cls = type(record)
        if isinstance(record, type) or not _is_record_class(cls):
            logger.debug("Refusing to validate %s", cls.__name__)
            raise RecordShapeError(record)

        data = {
            _input_key(binding): getattr(record, binding.attr)
            for binding in bindings_for(cls).values()
        }
        try:
            _adapter(cls).validate_python(data)
        except ValidationError as e:
            errors = self.collect_errors(cls, e)
            logger.debug("%s failed validation on %s", cls.__name__, ", ".join(errors))
            return errors, True
        return {}, False

    def validate_data(self, model: type[T], data: Any) -> tuple[T | None, dict[str, str]]:
        """Validate submitted form data against a record class.

        *data* is keyed by form name and may be a plain dict or a multidict.
        Collection fields receive every submitted value; scalar fields receive
        the last one, so a checked checkbox wins over its hidden companion.
        Missing bool fields are treated as unchecked.
        """
        if not _is_record_class(model):
            raise RecordShapeError(model)

        submitted = normalize_multi_map(data)
        annotations = _annotations(model)
        validation_data: dict[str, Any] = {}

        for form_name, binding in bindings_for(model).items():
            annotation = annotations.get(binding.attr)
            values = submitted.get(form_name)
            if values is None:
                # Unchecked checkboxes are not submitted
                if annotation is bool:
                    validation_data[_input_key(binding)] = False
                continue
            if typing.get_origin(annotation) in _COLLECTION_TYPES or annotation in _COLLECTION_TYPES:
                validation_data[_input_key(binding)] = values
            elif values:
                validation_data[_input_key(binding)] = values[-1]

        try:
            instance = _adapter(model).validate_python(validation_data)
        except ValidationError as e:
            return None, self.collect_errors(model, e)
        return instance, {}

    @staticmethod
    def collect_errors(cls: type, error: ValidationError) -> dict[str, str]:
        """Map pydantic errors to ``{form name: message}``, first error per field."""
        by_key: dict[str, FieldBinding] = {}
        for binding in bindings_for(cls).values():
            by_key[binding.attr] = binding
            if binding.alias:
                by_key[binding.alias] = binding

        errors: dict[str, str] = {}
        for err in error.errors():
            binding = by_key.get(str(err["loc"][0])) if err["loc"] else None
            if binding is None:
                field_name, message = FORM_ERROR_KEY, err["msg"]
            else:
                field_name, message = binding.form_name, binding.message or err["msg"]
            # Only keep first error per field
            if field_name not in errors:
                errors[field_name] = message
        return errors


validator = FormValidator()


def validate(record: Any) -> tuple[dict[str, str], bool]:
    """Validate *record* with the shared validator. See FormValidator.validate."""
    return validator.validate(record)


def validate_data(model: type[T], data: Any) -> tuple[T | None, dict[str, str]]:
    return validator.validate_data(model, data)
