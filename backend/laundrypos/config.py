# backend/laundrypos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/laundrypos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///laundrypos.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Pickup PIN: digits handed to the customer, bcrypt cost for the stored hash
    PICKUP_PIN_LENGTH = int(os.environ.get("PICKUP_PIN_LENGTH", "6"))
    PICKUP_PIN_BCRYPT_ROUNDS = int(os.environ.get("PICKUP_PIN_BCRYPT_ROUNDS", "10"))

    # Retry policy for transient store errors (locks, dropped connections)
    STORE_RETRY_ATTEMPTS = int(os.environ.get("STORE_RETRY_ATTEMPTS", "3"))
    STORE_RETRY_BACKOFF = float(os.environ.get("STORE_RETRY_BACKOFF", "0.1"))

    # Collaborator seams. None selects the database-backed defaults.
    SUBSCRIPTION_GATE = None
    AUDIT_SINK = None
    PRINCIPAL_RESOLVER = None
