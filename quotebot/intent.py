"""Deterministic intent extraction used when the model cannot help."""

from __future__ import annotations

import re

# Five digits not glued to other digits, optionally followed by a ZIP+4 suffix.
_POSTAL_CODE_RE = re.compile(r"(?<!\d)(\d{5})(?:-\d{4})?(?!\d)", re.ASCII)
_STRICT_POSTAL_CODE_RE = re.compile(r"\d{5}", re.ASCII)


def extract_postal_code(text: str | None) -> str | None:
    """Return the first US postal code found in *text*, or ``None``.

    Only the 5-digit part of a ZIP+4 code is returned.

    >>> extract_postal_code("ship to 90210-1234 please")
    '90210'
    >>> extract_postal_code("order 123456") is None
    True
    """
    if not text:
        return None
    match = _POSTAL_CODE_RE.search(text)
    return match.group(1) if match else None


def is_valid_postal_code(code: str | None) -> bool:
    """Strict check: exactly five ASCII digits, nothing else."""
    if not isinstance(code, str):
        return False
    return _STRICT_POSTAL_CODE_RE.fullmatch(code) is not None
