"""
automemo error types
"""

from typing import Any, Optional


class AutomemoError(Exception):
    """Base class for every error raised by automemo itself"""

    code = "E_AUTOMEMO"

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(self.format_message())

    def format_message(self) -> str:
        return self.msg


class KeyValidationError(AutomemoError, TypeError):
    """Raised when an argument list does not match the configured key schema.

    Surfaces before any cache interaction: nothing is read or written.
    """

    code = "E_KEY_SHAPE"

    def __init__(self, msg: str, position: Optional[Any] = None):
        self.position = position
        super().__init__(msg)

    def format_message(self) -> str:
        if self.position is None:
            return self.msg
        if isinstance(self.position, str):
            return f"{self.msg} (keyword argument '{self.position}')"
        return f"{self.msg} (argument {self.position})"


class SchemaDefinitionError(AutomemoError, ValueError):
    """Raised when a key schema or rule is constructed with invalid options"""

    code = "E_SCHEMA_DEFINITION"


def fail(msg: str, position: Optional[Any] = None) -> None:
    """Raise a key validation error for the given argument position"""
    raise KeyValidationError(msg, position)
