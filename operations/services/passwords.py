"""Credential hashing for hospitals, doctors and ambulance crews."""
from __future__ import annotations

from django.contrib.auth.hashers import check_password, identify_hasher, make_password


def is_hashed(value: str) -> bool:
    try:
        identify_hasher(value)
    except ValueError:
        return False
    return True


def hash_password(raw: str) -> str:
    """Hash ``raw``; values that are already hashed pass through unchanged."""
    if raw and is_hashed(raw):
        return raw
    return make_password(raw)


def verify_password(raw: str, encoded: str) -> bool:
    if not raw or not encoded:
        return False
    return check_password(raw, encoded)
