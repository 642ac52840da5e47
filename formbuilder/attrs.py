"""Attribute merging and rendering for generated tags."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from markupsafe import escape

# Attributes floated to the front of every tag, in this order
LEADING_ATTRIBUTES = ("type", "name", "value")

# HTML boolean attributes; the string "true" also turns these on as a bare keyword
BOOLEAN_ATTRIBUTES = frozenset({
    "autofocus", "checked", "disabled", "hidden", "multiple",
    "novalidate", "readonly", "required", "selected",
})


def attr_name(key: str) -> str:
    """Convert a Python keyword to an HTML attribute name.

    class_ -> class, data_id -> data-id, aria_label -> aria-label
    """
    return key.rstrip("_").replace("_", "-")


def class_tokens(value: Any) -> list[str]:
    if value is None or value is False or value is True:
        return []
    return str(value).split()


def union_classes(*values: Any) -> str:
    """Union whitespace separated class lists, keeping first-appearance order."""
    seen: dict[str, None] = {}
    for value in values:
        for token in class_tokens(value):
            seen.setdefault(token)
    return " ".join(seen)


def merge_attrs(
    defaults: Mapping[str, Any],
    *overrides: Mapping[str, Any],
    error_class: str | None = None,
) -> dict[str, Any]:
    """Merge caller attribute maps over computed defaults.

    Later maps win for every key except ``class``, whose tokens are unioned.
    When *error_class* is given it is appended to ``class`` once. None of the
    given mappings are modified.
    """
    merged = dict(defaults)
    classes = [merged.pop("class", None)]

    for attrs in overrides:
        for key, value in attrs.items():
            if key == "class":
                classes.append(value)
            else:
                merged[key] = value

    classes.append(error_class)
    joined = union_classes(*classes)
    if joined:
        merged["class"] = joined
    return merged


def ordered_items(attrs: Mapping[str, Any]) -> list[tuple[str, Any]]:
    """Return attributes in emission order: type, name, value, then alphabetical."""
    leading = [(key, attrs[key]) for key in LEADING_ATTRIBUTES if key in attrs]
    rest = sorted(
        (item for item in attrs.items() if item[0] not in LEADING_ATTRIBUTES),
        key=lambda item: item[0],
    )
    return leading + rest


def _is_true_string(key: str, value: Any) -> bool:
    return key in BOOLEAN_ATTRIBUTES and isinstance(value, str) and value.lower() == "true"


def render_attrs(attrs: Mapping[str, Any]) -> str:
    """Render a dict as HTML attributes string. Returns '' or ' key="val" key2="val2"'.

    True renders a bare keyword (``selected``), as does the string "true" for
    boolean attributes such as ``required``. False and None drop the
    attribute, everything else is escaped as a quoted value.
    """
    parts = []
    for key, value in ordered_items(attrs):
        if value is None or value is False:
            continue
        if value is True or _is_true_string(key, value):
            parts.append(key)
        else:
            parts.append(f'{key}="{escape(str(value))}"')
    if not parts:
        return ""
    return " " + " ".join(parts)
