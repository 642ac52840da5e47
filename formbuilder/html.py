"""Low-level tag rendering. Every helper returns Markup."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from markupsafe import Markup, escape

from formbuilder.attrs import render_attrs


def void_tag(tag: str, attrs: Mapping[str, Any]) -> Markup:
    """Render a void element such as <input>."""
    return Markup(f"<{tag}{render_attrs(attrs)}>")


def element(tag: str, attrs: Mapping[str, Any], body: Any = "") -> Markup:
    """Render an element with an escaped text body.

    Markup bodies are inserted as-is, so nested elements built with these
    helpers are not escaped twice.
    """
    return Markup(f"<{tag}{render_attrs(attrs)}>{escape(body)}</{tag}>")


def join(fragments: Iterable[Markup]) -> Markup:
    return Markup("").join(fragments)


def hidden_input(name: str, value: str) -> Markup:
    return void_tag("input", {"type": "hidden", "name": name, "value": value})
