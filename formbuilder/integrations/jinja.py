"""Jinja2 integration."""

from __future__ import annotations

import jinja2

from formbuilder.core import Option, new


def install(env: jinja2.Environment) -> jinja2.Environment:
    """Expose ``form_builder()`` and ``FormOption`` to templates.

    Builder output is Markup, so autoescaping environments render it as-is:

        {% set form = form_builder(action="/search", method="GET") %}
        {{ form.open() }}{{ form.search("q") }}{{ form.close() }}
    """
    env.globals["form_builder"] = new
    env.globals["FormOption"] = Option
    return env
