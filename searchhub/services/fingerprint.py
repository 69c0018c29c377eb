"""Content fingerprints used to detect document changes."""

import hashlib


def fingerprint(text: str) -> str:
    """Return the hex SHA-256 digest of the UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
