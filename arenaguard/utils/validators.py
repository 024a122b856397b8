"""
ArenaGuard - Input Validators
=============================

Input validation shared by every service before anything is written.

Features:
- Required text with length limits (names, titles, reasons, messages)
- Invitation code and deep-link parsing
- Channel name normalisation
- Role colour validation
- Positive duration checks
- Enum parsing with a readable error
"""

import re
from enum import Enum
from typing import Optional, Type, TypeVar

from arenaguard.core.constants import (
    INVITE_CODE_ALPHABET,
    INVITE_CODE_LENGTH,
    INVITE_LINK_PREFIX,
    MAX_NAME_LENGTH,
)
from arenaguard.core.errors import ValidationError

E = TypeVar("E", bound=Enum)


class Validators:
    """Input validation utilities"""

    CODE_PATTERN = re.compile(rf"^[{INVITE_CODE_ALPHABET}]{{{INVITE_CODE_LENGTH}}}$")
    COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
    CHANNEL_NAME_PATTERN = re.compile(r"^[a-z0-9_\-]+$")

    @staticmethod
    def require_text(value: Optional[str], field: str, max_length: int) -> str:
        """
        Validate required free text.

        Args:
            value: Raw input.
            field: Field name for the error.
            max_length: Maximum allowed length after stripping.

        Returns:
            The stripped text.

        Raises:
            ValidationError: If the text is missing, blank, or too long.
        """
        if value is None or not isinstance(value, str):
            raise ValidationError(f"{field} is required", field=field)
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} must not be empty", field=field)
        if len(value) > max_length:
            raise ValidationError(f"{field} exceeds {max_length} characters", field=field)
        return value

    @staticmethod
    def normalize_code(code: Optional[str]) -> str:
        """
        Normalise an invitation code (case-insensitive) or deep link.

        Accepts either the bare code or ``app://join/{code}``.

        Raises:
            ValidationError: If the result is not an 8-character [A-Z0-9] code.
        """
        if not code or not isinstance(code, str):
            raise ValidationError("Invitation code is required", field="code")
        code = code.strip()
        if code.lower().startswith(INVITE_LINK_PREFIX):
            code = code[len(INVITE_LINK_PREFIX):].strip("/")
        code = code.upper()
        if not Validators.CODE_PATTERN.match(code):
            raise ValidationError("Malformed invitation code", field="code")
        return code

    @staticmethod
    def normalize_channel_name(name: Optional[str]) -> str:
        """Lower-case the name and turn whitespace runs into dashes."""
        name = Validators.require_text(name, "name", MAX_NAME_LENGTH)
        name = "-".join(name.lower().split())
        if not Validators.CHANNEL_NAME_PATTERN.match(name):
            raise ValidationError(
                "Channel names may only contain letters, digits, '-' and '_'", field="name",
            )
        return name

    @staticmethod
    def parse_enum(enum_cls: Type[E], value, field: str) -> E:
        """Convert a raw value to enum_cls, rejecting unknown values with ValidationError."""
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ValidationError(f"Invalid {field}: {value} (expected one of: {allowed})", field=field)

    @staticmethod
    def validate_color(color: Optional[str], default: str) -> str:
        if not color:
            return default
        if not Validators.COLOR_PATTERN.match(color):
            raise ValidationError(f"Invalid colour: {color}", field="color")
        return color.upper()

    @staticmethod
    def validate_positive(value: Optional[int], field: str) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f"{field} must be a positive integer", field=field)
        return value


def parse_invite_link(link: str) -> str:
    """Extract the code from an ``app://join/{code}`` link (or a bare code)."""
    return Validators.normalize_code(link)


__all__ = ["Validators", "parse_invite_link"]
