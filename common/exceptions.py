from typing import Dict, List, Optional


FORM_DATA_MISSING_MESSAGE = "Form data is missing. Please fill out the form and try again."
BASE_ERROR_KEY = "base"


class NotAuthorizedError(Exception):
    """Raised by authorization policies; rendered as a redirect with a flash alert."""

    def __init__(self, message: str = "You are not authorized to perform this action.",
                 redirect_to: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to
        self.reason = reason


class InvalidEnumValueError(ValueError):
    """
    Raised when a restricted enum column receives a value outside its set.

    This points at a client bug rather than bad user input, so callers let it
    propagate instead of turning it into a form error.
    """

    def __init__(self, field: str, value, allowed):
        self.field = field
        self.value = value
        self.allowed = list(allowed)
        super().__init__(f"'{value}' is not a valid {field} (allowed: {', '.join(self.allowed)})")


class FormValidationError(ValueError):
    """Field-scoped validation errors collected while processing a form."""

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        super().__init__("; ".join(
            f"{field}: {', '.join(messages)}" for field, messages in errors.items()
        ))

    @classmethod
    def form_data_missing(cls) -> "FormValidationError":
        return cls({BASE_ERROR_KEY: [FORM_DATA_MISSING_MESSAGE]})

    def full_messages(self) -> List[str]:
        messages = []
        for field, field_messages in self.errors.items():
            for message in field_messages:
                # capitalised messages already read as full sentences
                if field == BASE_ERROR_KEY or message[:1].isupper():
                    messages.append(message)
                else:
                    messages.append(f"{field.replace('_', ' ').capitalize()} {message}")
        return messages
