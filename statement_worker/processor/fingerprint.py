import hashlib


def fingerprint(data: bytes) -> str:
    """SHA-256 hex digest of raw document bytes, used for duplicate detection."""
    return hashlib.sha256(data).hexdigest()
