"""
Mark minting - Cryptographic identity anchors for paid events.

A mark is the SHA-256 digest of email, mint time, the process secret and a
fresh random nonce. It is opaque: nothing can be recovered from it, and
two mints for the same email never collide because of the nonce.
"""

import hashlib
import secrets
from datetime import datetime, timezone

from .ports import Clock, NonceSource

MARK_LENGTH = 64


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def random_nonce() -> str:
    """16 bytes from the secrets module, hex encoded."""
    return secrets.token_hex(16)


def isoformat(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def mint(email: str, secret: str, clock: Clock = utc_now, rng: NonceSource = random_nonce) -> str:
    """
    Mint a new mark for ``email``.

    Pure apart from ``clock`` and ``rng``; inject fixed ones for
    deterministic output.

    Returns:
        64 lowercase hex characters
    """
    material = f"{email}{isoformat(clock())}{secret}{rng()}"
    return hashlib.sha256(material.encode()).hexdigest()


def marks_equal(left: str, right: str) -> bool:
    """Constant-time comparison of two marks."""
    return secrets.compare_digest(left.encode(), right.encode())


def redact(mark: str) -> str:
    """Short prefix of a mark, safe for logs."""
    return f"{mark[:8]}..." if mark else "<none>"
