"""
Invitation Code Generation
==========================

Random fixed-length codes from the invitation alphabet.
"""

import secrets

from arenaguard.core.constants import (
    INVITE_CODE_ALPHABET,
    INVITE_CODE_LENGTH,
    INVITE_LINK_PREFIX,
)


def generate_code(length: int = INVITE_CODE_LENGTH) -> str:
    """Cryptographically random upper-case alphanumeric code."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def build_invite_link(code: str) -> str:
    return f"{INVITE_LINK_PREFIX}{code}"


__all__ = ["generate_code", "build_invite_link"]
