"""Webhook authenticity checks."""

from __future__ import annotations

import hashlib
import hmac

from quotebot.errors import SignatureError

SIGNATURE_HEADER = "X-Hub-Signature-256"


def sign(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value for *body*."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(body: bytes, header: str | None, secret: str) -> None:
    """Check *header* against the HMAC-SHA256 of the raw request *body*.

    Raises:
        SignatureError: the header is missing, malformed or does not match.
    """
    if not header:
        raise SignatureError("Missing signature header", status_code=403)

    scheme, _, digest = header.strip().partition("=")
    if scheme.lower() != "sha256" or not digest:
        raise SignatureError("Malformed signature header", status_code=403)

    expected = sign(body, secret).encode("utf-8")
    supplied = f"sha256={digest.lower()}".encode("utf-8")
    if not hmac.compare_digest(expected, supplied):
        raise SignatureError("Signature mismatch", status_code=403)


def tokens_match(supplied: str | None, expected: str) -> bool:
    """Constant-time comparison of a verification token."""
    if supplied is None:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
