"""Form builder with value repopulation, error decoration, CSRF and method spoofing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from itertools import groupby
from types import MappingProxyType
from typing import Any, Callable

from markupsafe import Markup
from pydantic import BaseModel, ConfigDict, Field, field_validator

from formbuilder.attrs import attr_name, merge_attrs
from formbuilder.html import element, hidden_input, join, void_tag
from formbuilder.settings import Settings, get_settings
from formbuilder.values import MISSING, ValueResolver

TRANSPORT_METHODS = ("GET", "POST")
MULTIPART = "multipart/form-data"


def normalize_multi_map(data: Any) -> dict[str, list[str]]:
    """Convert submitted form data into a plain ``{name: [values]}`` dict.

    Accepts plain mappings whose values are strings or sequences of strings,
    and multidicts exposing ``getall`` (Litestar, multidict) or ``getlist``
    (Werkzeug, Django).
    """
    if data is None:
        return {}

    getall = getattr(data, "getall", None) or getattr(data, "getlist", None)
    result: dict[str, list[str]] = {}
    for key in data.keys():
        values = getall(key) if getall is not None else data[key]
        if values is None:
            values = []
        elif isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            values = [values]
        result[str(key)] = [_form_string(v) for v in values if _is_form_value(v)]
    return result


def _is_form_value(value: Any) -> bool:
    # Uploaded files are not repopulated
    return value is not None and not hasattr(value, "filename")


def _form_string(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class Config(BaseModel):
    """Snapshot of a form's rendering context."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    action: str = ""
    method: str = ""
    csrf_token: str = ""
    csrf_field: str = Field(default_factory=lambda: get_settings().csrf_field)
    model: Any = None
    old_input: dict[str, list[str]] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    multipart: bool = False
    field_resolver: Callable[[Any, str], Any] | None = None

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("csrf_field")
    @classmethod
    def _default_csrf_field(cls, value: str) -> str:
        return value or get_settings().csrf_field

    @field_validator("old_input", mode="before")
    @classmethod
    def _normalize_old_input(cls, value: Any) -> dict[str, list[str]]:
        return normalize_multi_map(value)

    @field_validator("errors", mode="before")
    @classmethod
    def _drop_empty_errors(cls, value: Any) -> Any:
        if value is None:
            return {}
        return {k: v for k, v in value.items() if v}


@dataclass(frozen=True)
class Option:
    """A choice in a select or radio group."""

    value: str
    text: str
    group: str = ""

    @classmethod
    def coerce(cls, item: Any) -> Option:
        """Build an Option from an Option, a (value, text[, group]) tuple, a mapping or a scalar."""
        if isinstance(item, Option):
            return item
        if isinstance(item, Mapping):
            value = str(item["value"])
            return cls(value, str(item.get("text", value)), str(item.get("group", "")))
        if isinstance(item, (tuple, list)):
            return cls(*(str(part) for part in item))
        return cls(str(item), str(item))


class Builder:
    """Renders form controls for one form.

    Usage (Jinja2):
        {{ form.open() }}
          {{ form.label("email", "Email") }}
          {{ form.email("email", placeholder="you@example.com") }}
          {{ form.field_error("email") }}
          {{ form.select("role", roles) }}
          {{ form.checkbox("subscribe") }}
          {{ form.submit("Save") }}
        {{ form.close() }}

    Every control accepts extra attributes as mappings and/or keyword
    arguments (``class_="wide"``, ``data_id="7"``). A builder holds no mutable
    state; rendering the same control twice produces identical output.
    """

    def __init__(self, config: Config, settings: Settings | None = None):
        self.config = config
        self.settings = settings if settings is not None else get_settings()
        self._old_input = MappingProxyType(
            {name: tuple(values) for name, values in config.old_input.items()}
        )
        self._errors = MappingProxyType(dict(config.errors))
        self._values = ValueResolver(self._old_input, config.model, config.field_resolver)

    # -- Form tag --

    @property
    def transport_method(self) -> str:
        """HTTP method the browser submits with: GET or POST (empty if unset)."""
        method = self.config.method
        if not method or method == "GET":
            return method
        return "POST"

    @property
    def spoofed_method(self) -> str | None:
        """Logical method sent through the hidden override field, if any."""
        method = self.config.method
        if method and method not in TRANSPORT_METHODS:
            return method
        return None

    def open(self, *attrs: Mapping[str, Any], **kwargs: Any) -> Markup:
        """Render the opening <form> tag followed by the method override and CSRF inputs."""
        defaults: dict[str, Any] = {
            "action": self.config.action,
            "method": self.transport_method,
        }
        if self.config.multipart:
            defaults["enctype"] = MULTIPART

        fragments = [void_tag("form", merge_attrs(defaults, *attrs, _keyword_attrs(kwargs)))]
        if self.spoofed_method:
            fragments.append(hidden_input(self.settings.method_field, self.spoofed_method))
        if self.config.csrf_token:
            fragments.append(hidden_input(self.config.csrf_field, self.config.csrf_token))
        return join(fragments)

    def close(self) -> Markup:
        return Markup("</form>")

    # -- Labels & buttons --

    def label(self, name: str, text: str, *attrs: Mapping[str, Any], **kwargs: Any) -> Markup:
        merged = merge_attrs({"for": name}, *attrs, _keyword_attrs(kwargs))
        return element("label", merged, text)

    def submit(self, text: str = "Submit", *attrs: Mapping[str, Any], **kwargs: Any) -> Markup:
        merged = merge_attrs({"type": "submit"}, *attrs, _keyword_attrs(kwargs))
        return element("button", merged, text)

    def button(self, text: str, *attrs: Mapping[str, Any], **kwargs: Any) -> Markup:
        merged = merge_attrs({"type": "button"}, *attrs, _keyword_attrs(kwargs))
        return element("button", merged, text)

    # -- Single-line inputs --

    def input(
        self,
        input_type: str,
        name: str,
        *attrs: Mapping[str, Any],
        default: Any = None,
        **kwargs: Any,
    ) -> Markup:
        """Render an <input> of any type with its value resolved and form-control styling."""
        defaults = {
            "type": input_type,
            "name": name,
            "value": self._values.value(name, default),
            "class": self.settings.input_class,
        }
        return void_tag("input", self._merge(name, defaults, attrs, kwargs))

    def text(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("text", name, *attrs, default=default, **kwargs)

    def email(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("email", name, *attrs, default=default, **kwargs)

    def number(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("number", name, *attrs, default=default, **kwargs)

    def tel(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("tel", name, *attrs, default=default, **kwargs)

    def url(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("url", name, *attrs, default=default, **kwargs)

    def search(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("search", name, *attrs, default=default, **kwargs)

    def date(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        return self.input("date", name, *attrs, default=default, **kwargs)

    def password(self, name: str, *attrs: Mapping[str, Any], **kwargs: Any) -> Markup:
        """Render a password input. Passwords are never repopulated."""
        defaults = {
            "type": "password",
            "name": name,
            "value": "",
            "class": self.settings.input_class,
        }
        merged = self._merge(name, defaults, attrs, kwargs)
        merged["value"] = ""
        return void_tag("input", merged)

    def hidden(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        defaults = {"type": "hidden", "name": name, "value": self._values.value(name, default)}
        return void_tag("input", self._merge(name, defaults, attrs, kwargs))

    def file(self, name: str, *attrs: Mapping[str, Any], **kwargs: Any) -> Markup:
        """Render a file input.

        The enclosing form must be opened with ``multipart=True``; this
        method does not change the form's encoding.
        """
        defaults = {"type": "file", "name": name}
        return void_tag("input", self._merge(name, defaults, attrs, kwargs))

    # -- Multi-line & choice controls --

    def textarea(self, name: str, *attrs: Mapping[str, Any], default: Any = None, **kwargs: Any) -> Markup:
        defaults = {"name": name, "class": self.settings.input_class}
        merged = self._merge(name, defaults, attrs, kwargs)
        return element("textarea", merged, self._values.value(name, default))

    def select(
        self,
        name: str,
        options: Iterable[Any],
        *attrs: Mapping[str, Any],
        default: Any = None,
        **kwargs: Any,
    ) -> Markup:
        """Render a <select>, marking the option(s) matching the resolved value.

        Consecutive options sharing a non-empty ``group`` are wrapped in one
        <optgroup>. Single selects mark only the first matching option; selects
        rendered with ``multiple=True`` mark every option in the resolved list.
        """
        defaults = {"name": name, "class": self.settings.select_class}
        merged = self._merge(name, defaults, attrs, kwargs)
        choices = [Option.coerce(item) for item in options]

        if merged.get("multiple") not in (None, False):
            chosen = set(self._values.values(name, default))
            selected = {i for i, option in enumerate(choices) if option.value in chosen}
        else:
            current = self._values.value(name, default)
            first = next((i for i, option in enumerate(choices) if option.value == current), None)
            selected = {first} if first is not None else set()

        fragments = []
        for group, items in groupby(enumerate(choices), key=lambda pair: pair[1].group):
            rendered = join(
                element("option", {"value": option.value, "selected": i in selected}, option.text)
                for i, option in items
            )
            if group:
                fragments.append(element("optgroup", {"label": group}, rendered))
            else:
                fragments.append(rendered)

        return element("select", merged, join(fragments))

    def checkbox(
        self,
        name: str,
        value: str = "1",
        *attrs: Mapping[str, Any],
        default: Any = None,
        unchecked_value: Any = MISSING,
        **kwargs: Any,
    ) -> Markup:
        """Render a checkbox preceded by a hidden input carrying the unchecked value.

        The hidden companion makes unchecked boxes still submit the field.
        Pass ``unchecked_value=None`` to leave it out.
        """
        if unchecked_value is MISSING:
            unchecked_value = self.settings.unchecked_value

        defaults = {
            "type": "checkbox",
            "name": name,
            "value": value,
            "class": self.settings.check_class,
            "checked": self._values.matches(name, value, default),
        }
        checkbox = void_tag("input", self._merge(name, defaults, attrs, kwargs))
        if unchecked_value is None:
            return checkbox
        return join([hidden_input(name, str(unchecked_value)), checkbox])

    def radio(
        self,
        name: str,
        value: str,
        *attrs: Mapping[str, Any],
        default: Any = None,
        **kwargs: Any,
    ) -> Markup:
        defaults = {
            "type": "radio",
            "name": name,
            "value": value,
            "class": self.settings.check_class,
            "checked": self._values.matches(name, value, default),
        }
        return void_tag("input", self._merge(name, defaults, attrs, kwargs))

    # -- Errors --

    def field_error(self, name: str) -> Markup:
        """Render the invalid-feedback element for a field, or nothing."""
        message = self._errors.get(name)
        if not message:
            return Markup("")
        return element("div", {"class": self.settings.feedback_class}, message)

    def has_error(self, name: str) -> bool:
        return bool(self._errors.get(name))

    def error(self, name: str) -> str | None:
        """Get validation error for a field (None if no error)."""
        return self._errors.get(name) or None

    @property
    def errors(self) -> Mapping[str, str]:
        return self._errors

    # -- Values --

    @property
    def old_input(self) -> Mapping[str, tuple[str, ...]]:
        return self._old_input

    def old(self, name: str, default: str = "") -> str:
        """First value submitted for a field on the previous request."""
        submitted = self._values.submitted(name)
        if submitted is None:
            return default
        return submitted[0]

    def value(self, name: str, default: Any = None) -> str:
        """The value a text control for *name* would render."""
        return self._values.value(name, default)

    # -- CSRF --

    def csrf_field(self) -> str:
        return self.config.csrf_field

    def csrf_token(self) -> str:
        return self.config.csrf_token

    # -- Internals --

    def _merge(
        self,
        name: str,
        defaults: Mapping[str, Any],
        attrs: tuple[Mapping[str, Any], ...],
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        error_class = self.settings.error_class if self.has_error(name) else None
        return merge_attrs(defaults, *attrs, _keyword_attrs(kwargs), error_class=error_class)

    def __repr__(self) -> str:
        return f"Builder(action={self.config.action!r}, method={self.config.method!r})"


def _keyword_attrs(kwargs: Mapping[str, Any]) -> dict[str, Any]:
    return {attr_name(key): value for key, value in kwargs.items()}


def new(config: Config | None = None, **fields: Any) -> Builder:
    """Create a Builder from a Config, keyword fields, or both.

        form = new(action="/users/1", method="PUT", csrf_token=token, model=user)
    """
    if config is None:
        config = Config(**fields)
    elif fields:
        config = Config(**{**dict(config), **fields})
    return Builder(config)
