"""Invitation code generation and the millisecond clock used by the store."""

from __future__ import annotations

import time
from collections.abc import Callable
from uuid import uuid4

CodeGenerator = Callable[[], str]
Clock = Callable[[], int]

DEFAULT_CODE_LENGTH = 8


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def generate_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Return the leading hex characters of a random UUID4.

    Uniqueness is left to the 122 random bits behind the UUID; the store is
    not consulted.
    """
    if not 1 <= length <= 32:
        raise ValueError("code length must be between 1 and 32")
    return uuid4().hex[:length]


def code_generator(length: int = DEFAULT_CODE_LENGTH) -> CodeGenerator:
    """Bind a code length into a zero-argument generator."""
    return lambda: generate_code(length)
