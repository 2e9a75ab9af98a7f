"""Magic-token issuance for customer quote links."""

from __future__ import annotations

import secrets
from typing import Callable

TOKEN_BYTES = 32
MAX_ATTEMPTS = 5


def issue_magic_token() -> str:
    """Return a fresh URL-safe bearer token (256 bits of randomness)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def issue_unique_token(exists: Callable[[str], bool]) -> str:
    """Draw tokens until ``exists`` reports one unused.

    A collision at this size means the random source is broken, so a few
    attempts are plenty; after that the caller's quote creation fails.
    """
    for _ in range(MAX_ATTEMPTS):
        token = issue_magic_token()
        if not exists(token):
            return token
    raise RuntimeError("Could not issue a unique magic token")
