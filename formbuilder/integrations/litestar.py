"""Litestar helpers: build form builders from requests and check session CSRF tokens."""

from __future__ import annotations

import logging
from typing import Any

from litestar import Request
from markupsafe import Markup

from formbuilder.core import Builder, Config, new, normalize_multi_map
from formbuilder.csrf import CSRFTokens, SessionTokenStore
from formbuilder.exceptions import CSRFError
from formbuilder.html import hidden_input
from formbuilder.settings import get_settings

logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = "_csrf_token"

# Requests whose body is never repopulated into a form
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def session_tokens(request: Request) -> CSRFTokens:
    """CSRFTokens bound to the request session, one token per session."""
    return CSRFTokens(SessionTokenStore(request.session, CSRF_SESSION_KEY))


def session_token(request: Request) -> str:
    """Return the session's CSRF token, creating one if needed."""
    return session_tokens(request).issue("")


async def old_input_from_request(request: Request) -> dict[str, list[str]]:
    """Submitted form values as a multi-map, minus the CSRF and method override fields."""
    if request.method.upper() in SAFE_METHODS:
        return {}

    settings = get_settings()
    form_data = await request.form()
    old_input = normalize_multi_map(form_data)
    old_input.pop(settings.csrf_field, None)
    old_input.pop(settings.method_field, None)
    return old_input


async def builder_from_request(
    request: Request,
    *,
    action: str = "",
    method: str = "POST",
    model: Any = None,
    errors: dict[str, str] | None = None,
    multipart: bool = False,
) -> Builder:
    """Create a Builder for a request.

    The CSRF token comes from the session; on POST-like requests the
    submitted values become old input so a failed submission re-renders
    with what the user typed.

    Usage:
        @post("/profile")
        async def update(request: Request) -> Template:
            user, errors = validate_data(ProfileForm, await request.form())
            form = await builder_from_request(request, action="/profile", errors=errors)
            return Template("profile.html", context={"form": form})
    """
    return new(
        Config(
            action=action,
            method=method,
            csrf_token=session_token(request),
            model=model,
            old_input=await old_input_from_request(request),
            errors=errors or {},
            multipart=multipart,
        )
    )


async def verify_csrf(request: Request) -> bool:
    """Verify the submitted CSRF token against the session token.

    Returns True if the token is valid. Rotates the token on success.
    """
    form_data = await request.form()
    if session_tokens(request).verify("", form_data.get(get_settings().csrf_field)):
        return True
    logger.debug("Rejected form submission to %s %s", request.method, request.url.path)
    return False


async def require_csrf(request: Request) -> None:
    """Like verify_csrf() but raises CSRFError on failure."""
    if not await verify_csrf(request):
        raise CSRFError("Form session expired. Please try again.")


def csrf_field(request: Request) -> Markup:
    """Hidden CSRF input for forms rendered without a Builder."""
    return hidden_input(get_settings().csrf_field, session_token(request))
