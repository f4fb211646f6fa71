# Overview: Pickup PIN generation, hashing, and verification.

"""
Pickup PIN

WHY: Goods are only released to someone who can show the short numeric code
handed out when the order became READY.

SECURITY NOTES:
- Digits come from the secrets module (CSPRNG)
- Only a bcrypt hash is stored; the plaintext is returned once and never
  persisted or logged
- bcrypt.checkpw() does the comparison, so verification is timing-safe
"""

import secrets

import bcrypt
from flask import current_app


def generate_pickup_pin(length: int | None = None) -> str:
    """Generate a fixed-length numeric PIN. Leading zeros are allowed."""
    if length is None:
        length = current_app.config.get("PICKUP_PIN_LENGTH", 6)
    if length < 4:
        raise ValueError("Pickup PIN must be at least 4 digits")
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_pickup_pin(pin: str) -> str:
    """Hash a PIN with bcrypt and a fresh salt."""
    rounds = current_app.config.get("PICKUP_PIN_BCRYPT_ROUNDS", 10)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(pin.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_pickup_pin(pin: str | None, pin_hash: str | None) -> bool:
    """
    Verify a PIN against its stored hash.

    Returns False for a missing PIN, a missing hash, or a malformed hash.
    """
    if not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        return False
