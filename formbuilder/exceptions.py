"""Exception types raised by formbuilder."""


class FormBuilderError(Exception):
    """Base class for all formbuilder errors."""


class RecordShapeError(FormBuilderError, TypeError):
    """Raised when validation is asked to check something that is not a record.

    Records are pydantic model instances or dataclass instances. Rule failures
    never raise; they are reported through the returned error mapping.
    """

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f"Cannot validate {type(value).__name__!s}: expected a pydantic model or dataclass instance"
        )


class CSRFError(FormBuilderError):
    """Raised when a submitted CSRF token does not match the stored token."""
