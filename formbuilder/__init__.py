"""formbuilder - server-side HTML form helpers with repopulation, inline errors and CSRF."""

from formbuilder.core import Builder, Config, Option, new
from formbuilder.csrf import CSRFTokens, MemoryTokenStore, SessionTokenStore, TokenStore
from formbuilder.exceptions import CSRFError, FormBuilderError, RecordShapeError
from formbuilder.validation import FormValidator, validate, validate_data
from formbuilder.values import dotted_path_resolver

__all__ = [
    "Builder",
    "Config",
    "CSRFError",
    "CSRFTokens",
    "FormBuilderError",
    "FormValidator",
    "MemoryTokenStore",
    "Option",
    "RecordShapeError",
    "SessionTokenStore",
    "TokenStore",
    "dotted_path_resolver",
    "new",
    "validate",
    "validate_data",
]
